from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Numeric, Enum, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from easy_ops.core.database import Base
import enum


class SaleSource(str, enum.Enum):
    MANUAL = "MANUAL"
    SQUARE = "SQUARE"
    OTHER = "OTHER"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    OTHER = "OTHER"


class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True)

    # nulled when the item is deleted so revenue history survives
    item_id = Column(Integer, ForeignKey("items.id", ondelete="SET NULL"), nullable=True)

    quantity = Column(Numeric(12, 2), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)

    source = Column(Enum(SaleSource, name="sale_source_enum"), nullable=False, default=SaleSource.MANUAL)
    payment_method = Column(Enum(PaymentMethod, name="sale_payment_method_enum"), nullable=True)
    customer_name = Column(String(255), nullable=True)
    user_id = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)

    sale_date = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    # relationships
    item = relationship("Item", back_populates="sales")
    ledger_entry = relationship("InventoryLog", back_populates="sale", uselist=False)
