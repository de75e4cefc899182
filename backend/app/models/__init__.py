from app.models.user import User
from app.models.category import Category
from app.models.location import Location
from app.models.event import ActorRole, Event, EventState, StateAction
from app.models.request import ParticipationRequest, RequestStatus
from app.models.compilation import Compilation, compilation_events

__all__ = [
    "User", "Category", "Location",
    "Event", "EventState", "ActorRole", "StateAction",
    "ParticipationRequest", "RequestStatus",
    "Compilation", "compilation_events",
]
