# easy_ops/schemas/dates.py
from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel, Field, ConfigDict


class GeneralDateCreate(BaseModel):
    label: str = Field(..., min_length=1, max_length=255)
    target_date: date
    notify_manager: Optional[bool] = True


class GeneralDateOut(GeneralDateCreate):
    id: int
    reminder_sent: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ItemDateCreate(GeneralDateCreate):
    item_id: int


class ItemDateOut(ItemDateCreate):
    id: int
    reminder_sent: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReminderResult(BaseModel):
    kind: str  # "item" or "general"
    date_id: int
    label: str
    target_date: date
    sent: bool
    error: Optional[str] = None
