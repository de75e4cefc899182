"""
Event lifecycle manager: state transitions and field edits.

State machine
=============

    PENDING --PUBLISH_EVENT (admin)--> PUBLISHED      (terminal)
    PENDING --REJECT_EVENT  (admin)--> CANCELED
    PENDING --CANCEL_REVIEW (owner)--> CANCELED
    CANCELED --CANCEL_REVIEW (owner)--> CANCELED      (no-op)
    CANCELED --SEND_TO_REVIEW (owner)--> PENDING
    PENDING --SEND_TO_REVIEW (owner)--> PENDING       (no-op)

Nothing leaves PUBLISHED. Owners edit fields while PENDING or CANCELED,
administrators only while PENDING. An edited event date must leave a lead
time: OWNER_EVENT_LEAD_HOURS for owners (ConflictError) and
ADMIN_EVENT_LEAD_HOURS for administrators (ValidationError).

Every edit runs under the event's lifecycle guard and commits before the
guard is released.
"""

from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.event import ActorRole, Event, EventState, StateAction
from app.schemas.event import (
    EventFieldsUpdate, LocationSchema, UpdateEventAdminRequest, UpdateEventUserRequest,
)
from app.services.category_service import get_category
from app.services.event_service import create_location, get_event
from app.services.interfaces.guard import lifecycle_key
from app.services.strategy_factory import get_event_guard
from app.services.user_service import ensure_user_exists
from app.core.clock import as_utc, is_before_lead_time, utcnow
from app.core.config import get_settings
from app.core.exceptions import AccessError, ConflictError, ValidationError
from app.core.logging import event_log_context, get_logger
from app.core.metrics import record_transition

logger = get_logger(__name__)
settings = get_settings()

P, PUB, C = EventState.PENDING, EventState.PUBLISHED, EventState.CANCELED

# action -> (allowed source states, target state)
TRANSITIONS: dict[ActorRole, dict[StateAction, tuple[frozenset, EventState]]] = {
    ActorRole.OWNER: {
        StateAction.CANCEL_REVIEW: (frozenset({P, C}), C),
        StateAction.SEND_TO_REVIEW: (frozenset({P, C}), P),
    },
    ActorRole.ADMIN: {
        StateAction.PUBLISH_EVENT: (frozenset({P}), PUB),
        StateAction.REJECT_EVENT: (frozenset({P}), C),
    },
}

# states in which each role may edit fields
EDITABLE_STATES = {
    ActorRole.OWNER: frozenset({P, C}),
    ActorRole.ADMIN: frozenset({P}),
}


def _check_owner(event: Event, actor_id: Optional[int]) -> None:
    if actor_id is None or event.initiator_id != actor_id:
        raise AccessError(f"User with id={actor_id} is not the initiator of event id={event.id}")


def _apply_transition(event: Event, role: ActorRole, action: StateAction) -> None:
    allowed = TRANSITIONS[role]
    if action not in allowed:
        raise AccessError(f"Action {action.value} is not available to {role.value}")

    sources, target = allowed[action]
    current = EventState(event.state)
    if current not in sources:
        logger.warning(
            "event_transition_rejected",
            event_id=event.id,
            action=action.value,
            state=current.value,
        )
        raise ConflictError(
            f"Cannot {action.value} event id={event.id}: event is {current.value}"
        )

    if current == target:
        logger.info("event_transition_noop", event_id=event.id, action=action.value, state=current.value)
        return

    event.state = target.value
    if target == PUB:
        event.published_on = utcnow()
    record_transition(action.value, target.value)
    logger.info(
        "event_transitioned",
        event_id=event.id,
        action=action.value,
        from_state=current.value,
        to_state=target.value,
    )


def _check_editable(event: Event, role: ActorRole) -> None:
    if EventState(event.state) not in EDITABLE_STATES[role]:
        raise ConflictError(
            f"{role.value.title()} cannot edit event id={event.id} while it is {event.state}"
        )


def _check_event_date(fields: dict, role: ActorRole) -> None:
    event_date = fields.get("event_date")
    if event_date is None:
        return
    if role == ActorRole.OWNER:
        if is_before_lead_time(event_date, settings.OWNER_EVENT_LEAD_HOURS):
            raise ConflictError(
                f"Event date must be at least {settings.OWNER_EVENT_LEAD_HOURS} hours in the future"
            )
    elif is_before_lead_time(event_date, settings.ADMIN_EVENT_LEAD_HOURS):
        raise ValidationError(
            f"Event date must be at least {settings.ADMIN_EVENT_LEAD_HOURS} hours in the future"
        )


async def _apply_fields(db: AsyncSession, event: Event, fields: dict) -> None:
    for name, value in fields.items():
        if name == "category":
            event.category_id = value
        elif name == "location":
            location = await create_location(db, LocationSchema.model_validate(value))
            event.location_id = location.id
        elif name == "event_date":
            event.event_date = as_utc(value)
        elif name == "participant_limit":
            if value and value < event.confirmed_requests:
                raise ConflictError(
                    f"Participant limit {value} is below the {event.confirmed_requests} confirmed requests"
                )
            # admission re-checks the limit through the version
            event.participant_limit = value
            event.version = event.version + 1
        else:
            setattr(event, name, value)


def _normalize_fields(fields: Union[EventFieldsUpdate, dict, None]) -> dict:
    if fields is None:
        return {}
    if isinstance(fields, EventFieldsUpdate):
        return fields.changed_fields()
    return {k: v for k, v in fields.items() if v is not None}


async def _edit_event(
    db: AsyncSession,
    event_id: int,
    role: ActorRole,
    actor_id: Optional[int],
    fields: dict,
    action: Optional[StateAction],
) -> Event:
    if role == ActorRole.OWNER:
        await ensure_user_exists(db, actor_id)
    if "category" in fields:
        await get_category(db, fields["category"])

    with event_log_context(event_id, role=role.value):
        async with get_event_guard().hold(lifecycle_key(event_id)):
            try:
                event = await get_event(db, event_id, for_update=True)
                if role == ActorRole.OWNER:
                    _check_owner(event, actor_id)

                if fields:
                    _check_editable(event, role)
                    _check_event_date(fields, role)
                if action is not None:
                    _apply_transition(event, role, action)
                if fields:
                    await _apply_fields(db, event, fields)
                    logger.info("event_fields_updated", event_id=event_id, fields=sorted(fields))

                await db.commit()
            except Exception:
                await db.rollback()
                raise
    return event


async def transition_event(
    db: AsyncSession,
    event_id: int,
    actor_role: ActorRole,
    action: StateAction,
    actor_id: Optional[int] = None,
) -> Event:
    """Apply a lifecycle action. Owner calls must pass the acting user's id."""
    return await _edit_event(db, event_id, actor_role, actor_id, {}, action)


async def update_event_fields(
    db: AsyncSession,
    event_id: int,
    actor_role: ActorRole,
    fields: Union[EventFieldsUpdate, dict],
    actor_id: Optional[int] = None,
) -> Event:
    """Edit event fields without changing its state."""
    return await _edit_event(db, event_id, actor_role, actor_id, _normalize_fields(fields), None)


async def update_event_by_owner(
    db: AsyncSession, user_id: int, event_id: int, update: UpdateEventUserRequest
) -> Event:
    """Owner PATCH: field edits and an optional review action in one call."""
    action = StateAction(update.state_action.value) if update.state_action else None
    return await _edit_event(db, event_id, ActorRole.OWNER, user_id, update.changed_fields(), action)


async def update_event_by_admin(
    db: AsyncSession, event_id: int, update: UpdateEventAdminRequest
) -> Event:
    """Admin PATCH: field edits and an optional publish/reject action in one call."""
    action = StateAction(update.state_action.value) if update.state_action else None
    return await _edit_event(db, event_id, ActorRole.ADMIN, None, update.changed_fields(), action)
