"""Time slot model definitions."""

import uuid

from sqlalchemy import Boolean, Column, Date, ForeignKey, String, Time
from lawbook.database import Base


class TimeSlot(Base):
    """Represents a bookable interval published by a lawyer."""
    __tablename__ = "time_slots"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    lawyer_id = Column(String(36), ForeignKey("lawyers.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
