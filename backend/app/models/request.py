"""
Participation request: a user's application to take part in an event.

Key design decisions:
- Requests are never deleted; cancellation and rejection are statuses
- One non-canceled request per requester per event is enforced by the
  request service inside the event critical section; canceled rows
  for the same pair may accumulate
- Composite index on (event_id, status) backs the confirmed-count query
"""

import enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String

from app.db.base import Base
from app.core.clock import utcnow


class RequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    CANCELED = "CANCELED"


class ParticipationRequest(Base):
    __tablename__ = "requests"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="RESTRICT"), nullable=False)
    requester_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value)
    created = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'REJECTED', 'CANCELED')",
            name="check_request_status",
        ),
        Index("ix_requests_event_status", "event_id", "status"),
        Index("ix_requests_event_requester", "event_id", "requester_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ParticipationRequest(id={self.id}, event={self.event_id}, "
            f"requester={self.requester_id}, status={self.status})>"
        )
