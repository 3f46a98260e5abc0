from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, ForeignKey, DateTime,
    CheckConstraint, Index, UniqueConstraint, func, text,
)
from sqlalchemy.orm import relationship
from easy_ops.core.database import Base


class Item(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    category = Column(String(120), nullable=False, default="Uncategorized")
    unit_of_measure = Column(String(50), nullable=False, default="unit")  # singular form
    cost_per_unit = Column(Numeric(12, 2), nullable=False, default=0)
    alert_threshold = Column(Numeric(12, 2), nullable=False, default=0)

    # Square catalog variation id (order webhooks) and SKU/UPC (payment webhooks)
    barcode = Column(String(120), nullable=True, index=True)
    barcode_number = Column(String(64), nullable=True, unique=True, index=True)

    # aggregate of item_locations.quantity, written only by the reconciliation engine
    stock_quantity = Column(Numeric(12, 2), nullable=False, default=0)
    is_auto_deduct = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_items_stock_non_negative"),
    )

    locations = relationship(
        "ItemLocationStock",
        back_populates="item",
        cascade="all, delete-orphan"
    )
    ledger_entries = relationship(
        "InventoryLog",
        back_populates="item",
        passive_deletes=True
    )
    sales = relationship("Sale", back_populates="item")
    dates = relationship(
        "ItemDate",
        back_populates="item",
        cascade="all, delete-orphan"
    )

    @property
    def is_low_stock(self) -> bool:
        return bool(self.alert_threshold) and self.stock_quantity <= self.alert_threshold


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        # at most one default location
        Index(
            "uq_locations_single_default",
            "is_default",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default = 1"),
        ),
    )

    stock = relationship(
        "ItemLocationStock",
        back_populates="location",
        cascade="all, delete-orphan"
    )


class ItemLocationStock(Base):
    __tablename__ = "item_locations"

    id = Column(Integer, primary_key=True)
    item_id = Column(
        Integer,
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False
    )
    location_id = Column(
        Integer,
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False
    )
    quantity = Column(Numeric(12, 2), nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("item_id", "location_id", name="uq_item_location"),
        CheckConstraint("quantity >= 0", name="ck_item_locations_non_negative"),
    )

    item = relationship("Item", back_populates="locations")
    location = relationship("Location", back_populates="stock")
