from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from easy_ops.core.database import Base


class ItemDate(Base):
    __tablename__ = "item_dates"

    id = Column(Integer, primary_key=True)
    item_id = Column(
        Integer,
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False
    )
    label = Column(String(255), nullable=False)
    target_date = Column(Date, nullable=False)
    notify_manager = Column(Boolean, nullable=False, default=True)
    reminder_sent = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    item = relationship("Item", back_populates="dates")


class GeneralDate(Base):
    __tablename__ = "general_dates"

    id = Column(Integer, primary_key=True)
    label = Column(String(255), nullable=False)
    target_date = Column(Date, nullable=False)
    notify_manager = Column(Boolean, nullable=False, default=True)
    reminder_sent = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
