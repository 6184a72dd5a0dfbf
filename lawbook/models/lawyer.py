"""Lawyer profile model definitions."""

import uuid

from sqlalchemy import Column, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship
from lawbook.database import Base
from lawbook.models.user import User


class Lawyer(Base):
    """Represents a consultant who publishes time slots."""
    __tablename__ = "lawyers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, unique=True)
    slug = Column(String, unique=True, index=True)
    specialization = Column(String, nullable=False, default="")
    bio = Column(String)
    avatar_url = Column(String)
    consultation_price = Column(Numeric(10, 2))

    user = relationship(User, lazy="joined")
