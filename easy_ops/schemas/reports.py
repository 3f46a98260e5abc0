# easy_ops/schemas/reports.py
from typing import List, Optional
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel


class CategoryValue(BaseModel):
    category: str
    value: Decimal
    item_count: int


class InventoryValueReport(BaseModel):
    total_value: Decimal
    by_category: List[CategoryValue] = []


class CogsMetrics(BaseModel):
    start: datetime
    end: datetime
    cogs: Decimal
    revenue: Decimal
    gross_profit: Decimal
    margin_percent: Optional[Decimal] = None  # None when there is no revenue


class LowStockItem(BaseModel):
    item_id: int
    name: str
    category: str
    unit_of_measure: str
    stock_quantity: Decimal
    alert_threshold: Decimal
    shortage: Decimal


class TopItem(BaseModel):
    item_id: int
    name: str
    unit_of_measure: str
    volume: Decimal


class WasteByCategory(BaseModel):
    category: str
    quantity: Decimal
    cost: Decimal


class SalesToday(BaseModel):
    count: int
    revenue: Decimal


class DashboardMetrics(BaseModel):
    inventory_value: Decimal
    low_stock_count: int
    negative_stock_count: int
    sales_today: SalesToday
    cogs_last_30_days: CogsMetrics
