"""
Pydantic schemas for participation requests and the admission controller.
"""

from datetime import datetime
from typing import Literal

from pydantic import Field

from app.schemas.base import CamelModel


class ParticipationRequestResponse(CamelModel):
    id: int
    event: int = Field(validation_alias="event_id")
    requester: int = Field(validation_alias="requester_id")
    status: str
    created: datetime


class EventRequestStatusUpdateRequest(CamelModel):
    request_ids: list[int] = Field(..., min_length=1)
    status: Literal["CONFIRMED", "REJECTED"]


class EventRequestStatusUpdateResult(CamelModel):
    confirmed_requests: list[ParticipationRequestResponse]
    rejected_requests: list[ParticipationRequestResponse]
