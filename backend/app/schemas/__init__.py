from app.schemas.user import UserCreate, UserResponse, UserShortResponse
from app.schemas.category import CategoryCreate, CategoryResponse
from app.schemas.event import (
    AdminStateAction, EventCreate, EventFieldsUpdate, EventFullResponse, EventShortResponse,
    LocationSchema, UpdateEventAdminRequest, UpdateEventUserRequest, UserStateAction,
)
from app.schemas.compilation import CompilationCreate, CompilationResponse, CompilationUpdate
from app.schemas.request import (
    EventRequestStatusUpdateRequest, EventRequestStatusUpdateResult, ParticipationRequestResponse,
)

__all__ = [
    "UserCreate", "UserResponse", "UserShortResponse",
    "CategoryCreate", "CategoryResponse",
    "EventCreate", "EventFieldsUpdate", "EventFullResponse", "EventShortResponse", "LocationSchema",
    "UpdateEventAdminRequest", "UpdateEventUserRequest", "UserStateAction", "AdminStateAction",
    "EventRequestStatusUpdateRequest", "EventRequestStatusUpdateResult",
    "ParticipationRequestResponse",
    "CompilationCreate", "CompilationUpdate", "CompilationResponse",
]
