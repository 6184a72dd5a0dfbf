"""Appointment model definitions."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String
from lawbook.database import Base

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"

ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)


class Appointment(Base):
    """Represents a client's reservation against a time slot."""
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    time_slot_id = Column(String(36), ForeignKey("time_slots.id"), nullable=False, index=True)
    client_name = Column(String, nullable=False)
    client_email = Column(String, nullable=False, index=True)
    client_phone = Column(String, nullable=False)
    comment = Column(String)
    status = Column(String, nullable=False, default=STATUS_PENDING)
    transaction_id = Column(String)
    payment_id = Column(String)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
