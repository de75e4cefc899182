"""
Pydantic schemas for event-related request/response validation.
"""

import enum
from datetime import datetime
from typing import Optional

from pydantic import Field

from app.schemas.base import CamelModel
from app.schemas.category import CategoryResponse
from app.schemas.user import UserShortResponse


class LocationSchema(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class EventCreate(CamelModel):
    title: str = Field(..., min_length=3, max_length=120)
    annotation: str = Field(..., min_length=20, max_length=2000)
    description: str = Field(..., min_length=20, max_length=7000)
    category: int
    event_date: datetime
    location: LocationSchema
    paid: bool = False
    participant_limit: int = Field(0, ge=0)
    request_moderation: bool = True


class EventFieldsUpdate(CamelModel):
    """Editable event fields; None means "leave unchanged"."""

    title: Optional[str] = Field(None, min_length=3, max_length=120)
    annotation: Optional[str] = Field(None, min_length=20, max_length=2000)
    description: Optional[str] = Field(None, min_length=20, max_length=7000)
    category: Optional[int] = None
    event_date: Optional[datetime] = None
    location: Optional[LocationSchema] = None
    paid: Optional[bool] = None
    participant_limit: Optional[int] = Field(None, ge=0)
    request_moderation: Optional[bool] = None

    def changed_fields(self) -> dict:
        return self.model_dump(
            exclude_none=True,
            exclude={"state_action"},
            by_alias=False,
        )


class UserStateAction(str, enum.Enum):
    SEND_TO_REVIEW = "SEND_TO_REVIEW"
    CANCEL_REVIEW = "CANCEL_REVIEW"


class AdminStateAction(str, enum.Enum):
    PUBLISH_EVENT = "PUBLISH_EVENT"
    REJECT_EVENT = "REJECT_EVENT"


class UpdateEventUserRequest(EventFieldsUpdate):
    state_action: Optional[UserStateAction] = None


class UpdateEventAdminRequest(EventFieldsUpdate):
    state_action: Optional[AdminStateAction] = None


class EventShortResponse(CamelModel):
    id: int
    title: str
    annotation: str
    category: CategoryResponse
    confirmed_requests: int
    event_date: datetime
    initiator: UserShortResponse
    paid: bool
    views: int = 0
    likes_count: int = 0


class EventFullResponse(EventShortResponse):
    description: str
    location: LocationSchema
    participant_limit: int
    request_moderation: bool
    state: str
    created_on: datetime
    published_on: Optional[datetime] = None
