from sqlalchemy import Column, String, DateTime, func
from easy_ops.core.database import Base


class Profile(Base):
    """Mirror of the identity provider's users; only display name and role are read here."""
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="staff")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
