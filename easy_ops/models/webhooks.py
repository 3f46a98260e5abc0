from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, JSON
from easy_ops.core.database import Base


class WebhookEvent(Base):
    """Presence of a row means the provider order was fully processed."""
    __tablename__ = "webhook_events"

    id = Column(Integer, primary_key=True)
    event_id = Column(String(255), nullable=False, unique=True, index=True)
    event_type = Column(String(100), nullable=False)
    payload = Column(JSON, nullable=True)
    received_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
