"""
Declarative base shared by all models.
"""

from sqlalchemy import Column, DateTime
from sqlalchemy.orm import DeclarativeBase

from app.core.clock import utcnow


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    """Row bookkeeping timestamps, set from the application clock."""

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
