"""
Event model with lifecycle state and participant capacity.

Key design decisions:
- `state` only ever holds PENDING, PUBLISHED or CANCELED (enforced by a CHECK)
- `confirmed_requests` is a denormalized aggregate of CONFIRMED requests,
  written only inside the event's admission critical section
- `version` enables optimistic locking: every write of `confirmed_requests`
  bumps it, so a concurrent writer on another process is detected at commit
- Index on `event_date` for range queries on the public listing
"""

import enum

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text,
)

from app.db.base import Base
from app.core.clock import utcnow


class EventState(str, enum.Enum):
    PENDING = "PENDING"
    PUBLISHED = "PUBLISHED"
    CANCELED = "CANCELED"


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(120), nullable=False)
    annotation = Column(String(2000), nullable=False)
    description = Column(Text, nullable=False)
    event_date = Column(DateTime(timezone=True), nullable=False)
    paid = Column(Boolean, nullable=False, default=False)
    participant_limit = Column(Integer, nullable=False, default=0)
    request_moderation = Column(Boolean, nullable=False, default=True)
    state = Column(String(20), nullable=False, default=EventState.PENDING.value)
    created_on = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    published_on = Column(DateTime(timezone=True), nullable=True)

    initiator_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)

    confirmed_requests = Column(Integer, nullable=False, default=0)

    # Optimistic locking version counter for the capacity aggregate
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("participant_limit >= 0", name="check_participant_limit_non_negative"),
        CheckConstraint("confirmed_requests >= 0", name="check_confirmed_non_negative"),
        CheckConstraint(
            "participant_limit = 0 OR confirmed_requests <= participant_limit",
            name="check_confirmed_lte_limit",
        ),
        CheckConstraint("state IN ('PENDING', 'PUBLISHED', 'CANCELED')", name="check_event_state"),
        Index("ix_events_event_date", "event_date"),
        Index("ix_events_state_date", "state", "event_date"),
    )

    @property
    def has_capacity_limit(self) -> bool:
        return self.participant_limit > 0

    @property
    def is_full(self) -> bool:
        return self.has_capacity_limit and self.confirmed_requests >= self.participant_limit

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, state={self.state}, "
            f"confirmed={self.confirmed_requests}/{self.participant_limit})>"
        )


class ActorRole(str, enum.Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"


class StateAction(str, enum.Enum):
    # owner actions
    SEND_TO_REVIEW = "SEND_TO_REVIEW"
    CANCEL_REVIEW = "CANCEL_REVIEW"
    # admin actions
    PUBLISH_EVENT = "PUBLISH_EVENT"
    REJECT_EVENT = "REJECT_EVENT"
