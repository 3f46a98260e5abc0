# easy_ops/schemas/inventory.py
from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

from easy_ops.models.sales import SaleSource, PaymentMethod


# -------------------------------
# LOCATION SCHEMAS
# -------------------------------
class LocationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    is_default: Optional[bool] = False


class LocationCreate(LocationBase):
    pass


class LocationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class LocationOut(LocationBase):
    id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LocationWithCountOut(LocationOut):
    item_count: int = 0


# -------------------------------
# ITEM SCHEMAS
# -------------------------------
class ItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = "Uncategorized"
    unit_of_measure: Optional[str] = "unit"
    cost_per_unit: Decimal = Field(Decimal("0"), ge=0)
    alert_threshold: Decimal = Field(Decimal("0"), ge=0)
    barcode: Optional[str] = None
    barcode_number: Optional[str] = None
    is_auto_deduct: Optional[bool] = False


class ItemCreate(ItemBase):
    initial_quantity: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    location_id: Optional[int] = None


class ItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = None
    unit_of_measure: Optional[str] = None
    cost_per_unit: Optional[Decimal] = Field(None, ge=0)
    alert_threshold: Optional[Decimal] = Field(None, ge=0)
    barcode: Optional[str] = None
    barcode_number: Optional[str] = None
    is_auto_deduct: Optional[bool] = None


class ItemOut(ItemBase):
    id: int
    stock_quantity: Decimal
    is_low_stock: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LocationStockOut(BaseModel):
    location_id: int
    location_name: str
    is_default: bool
    quantity: Decimal
    quantity_display: str


class ItemStockOut(BaseModel):
    item_id: int
    name: str
    unit_of_measure: str
    stock_quantity: Decimal
    stock_display: str
    locations: List[LocationStockOut] = []


# -------------------------------
# STOCK MOVEMENT SCHEMAS
# -------------------------------
class ReceiveRequest(BaseModel):
    item_id: int
    location_id: int
    quantity: Decimal = Field(..., gt=0, decimal_places=2)
    notes: Optional[str] = None


class ConsumeRequest(BaseModel):
    item_id: int
    location_id: int
    quantity: Decimal = Field(..., gt=0, decimal_places=2)
    reason: str = "Consumed"
    notes: Optional[str] = None


class SellRequest(BaseModel):
    item_id: int
    quantity: Decimal = Field(..., gt=0, decimal_places=2)
    unit_price: Decimal = Field(..., ge=0, decimal_places=2)
    source: SaleSource = SaleSource.MANUAL
    payment_method: Optional[PaymentMethod] = None
    customer_name: Optional[str] = None
    location_id: Optional[int] = None
    notes: Optional[str] = None


class AdjustRequest(BaseModel):
    item_id: int
    actual_quantity: Decimal = Field(..., ge=0, decimal_places=2)
    location_id: Optional[int] = None
    notes: Optional[str] = None


class MovementResultOut(BaseModel):
    item_id: int
    change_type: Optional[str] = None
    requested_quantity: Decimal
    applied_delta: Decimal
    new_stock_quantity: Decimal
    clamped: bool = False
    ledger_entry_id: Optional[int] = None
    ledger_recorded: bool = True
    sale_id: Optional[int] = None


# -------------------------------
# RECONCILIATION SCHEMAS
# -------------------------------
class AggregateDriftOut(BaseModel):
    item_id: int
    previous_quantity: Decimal
    location_total: Decimal
    drift: Decimal


class LedgerAuditOut(BaseModel):
    item_id: int
    name: str
    stock_quantity: Decimal
    ledger_total: Decimal
    difference: Decimal
