from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Numeric, Enum, DateTime, ForeignKey, Text, Index, event,
)
from sqlalchemy.orm import relationship
from easy_ops.core.database import Base
import enum


class ChangeType(str, enum.Enum):
    RECEIVE = "RECEIVE"
    CONSUME = "CONSUME"
    SALE = "SALE"
    ADJUST = "ADJUST"
    WASTE = "WASTE"


class InventoryLog(Base):
    """Append-only ledger of every stock quantity change."""
    __tablename__ = "inventory_log"

    id = Column(Integer, primary_key=True)
    item_id = Column(
        Integer,
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False
    )
    change_type = Column(
        Enum(ChangeType, name="inventory_change_type_enum"),
        nullable=False
    )
    quantity_change = Column(Numeric(12, 2), nullable=False)  # signed
    unit_cost_at_time = Column(Numeric(12, 2), nullable=False, default=0)
    user_id = Column(String(64), nullable=True, index=True)  # identity-provider id, NULL = system
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)
    timestamp = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("idx_inventory_log_item_ts", "item_id", "timestamp"),
        Index("idx_inventory_log_ts", "timestamp"),
    )

    item = relationship("Item", back_populates="ledger_entries")
    user = relationship(
        "Profile",
        primaryjoin="foreign(InventoryLog.user_id) == Profile.id",
        viewonly=True
    )
    sale = relationship("Sale", back_populates="ledger_entry")


class LedgerImmutableError(Exception):
    pass


@event.listens_for(InventoryLog, "before_update")
def _refuse_ledger_update(mapper, connection, target):
    raise LedgerImmutableError(f"Ledger entry {target.id} is immutable")


@event.listens_for(InventoryLog, "before_delete")
def _refuse_ledger_delete(mapper, connection, target):
    # item deletion removes ledger rows with a bulk delete, which bypasses this hook
    raise LedgerImmutableError(f"Ledger entry {target.id} cannot be deleted")
