"""User model definitions."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from lawbook.database import Base

ROLE_CLIENT = "client"
ROLE_LAWYER = "lawyer"
ROLE_SUPERADMIN = "superadmin"


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String)
    role = Column(String, nullable=False, default=ROLE_CLIENT)  # client/lawyer/superadmin
    full_name = Column(String, nullable=False, default="")
    phone = Column(String)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
