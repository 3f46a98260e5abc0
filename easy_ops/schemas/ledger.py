# easy_ops/schemas/ledger.py
from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel


class ActivityEntryOut(BaseModel):
    id: int
    item_id: int
    item_name: Optional[str] = None
    unit_of_measure: Optional[str] = None
    change_type: str
    quantity_change: Decimal
    quantity_display: str
    unit_cost_at_time: Decimal
    user_id: Optional[str] = None
    user_name: Optional[str] = None  # None means a system action
    sale_id: Optional[int] = None
    notes: Optional[str] = None
    timestamp: datetime


class ActivityPage(BaseModel):
    total: int
    items: List[ActivityEntryOut] = []
