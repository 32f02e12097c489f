"""Core event service: event lifecycle and the cancellation cascade.

Responsibilities:
- Field validation on create and update (title/location length, date
  ordering, capacity bounds)
- Lifecycle guards: cancelled and deleted are one-way terminal markers
- Cancellation cascade: one atomic transition on the event, then a
  best-effort notice to every active attendee
- Every mutation runs under the event's lock (see ``services/locks.py``)
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.exceptions import InvalidStateError, NotFoundError, ValidationError
from app.models.event import Event, EventCategory
from app.models.member import Member
from app.models.rsvp import EventRSVP, ACTIVE_STATUSES
from app.services.clock import Clock, ensure_utc, utcnow
from app.services.locks import event_transaction
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.notifications import EventSnapshot

logger = logging.getLogger(__name__)

TITLE_MIN, TITLE_MAX = 3, 200
LOCATION_MIN, LOCATION_MAX = 3, 500
CAPACITY_MIN, CAPACITY_MAX = 1, 10_000
REASON_MAX = 500

UPDATABLE_FIELDS = (
    "title",
    "description",
    "location",
    "start_time_utc",
    "end_time_utc",
    "category",
    "max_capacity",
    "image_url",
)


@dataclass
class EventCancellation:
    event_id: str
    title: str
    cancelled_at: datetime
    cancel_reason: Optional[str]
    affected_attendees: int

    @property
    def message(self) -> str:
        return f"Event cancelled successfully. {self.affected_attendees} attendees will be notified."


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def _require_text(value: Optional[str], label: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"Event {label} is required", f"{label}_required")
    return value.strip()


def _validate_length(value: str, label: str, minimum: int, maximum: int) -> None:
    if len(value) < minimum:
        raise ValidationError(f"Event {label} must be at least {minimum} characters", f"{label}_too_short")
    if len(value) > maximum:
        raise ValidationError(f"Event {label} cannot exceed {maximum} characters", f"{label}_too_long")


def _validate_dates(start: Optional[datetime], end: Optional[datetime]) -> tuple[datetime, datetime]:
    if start is None:
        raise ValidationError("Invalid start date", "invalid_start_date")
    if end is None:
        raise ValidationError("Invalid end date", "invalid_end_date")
    start, end = ensure_utc(start), ensure_utc(end)
    if end <= start:
        raise ValidationError("End date must be after start date", "invalid_dates")
    return start, end


def _validate_capacity(capacity: Optional[int]) -> None:
    if capacity is None:
        return
    if isinstance(capacity, bool) or not isinstance(capacity, int):
        raise ValidationError("Event capacity must be a whole number", "invalid_capacity")
    if capacity < CAPACITY_MIN:
        raise ValidationError(f"Event capacity must be at least {CAPACITY_MIN}", "capacity_out_of_range")
    if capacity > CAPACITY_MAX:
        raise ValidationError(f"Event capacity cannot exceed {CAPACITY_MAX:,}", "capacity_out_of_range")


def _validate_category(category: Any) -> EventCategory:
    try:
        return EventCategory(category)
    except ValueError:
        raise ValidationError(f"Invalid event category: {category}", "invalid_category")


def validate_event_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Validate a full set of event fields and return them normalized (trimmed, UTC)."""
    title = _require_text(fields.get("title"), "title")
    description = _require_text(fields.get("description"), "description")
    location = _require_text(fields.get("location"), "location")
    start, end = _validate_dates(fields.get("start_time_utc"), fields.get("end_time_utc"))
    _validate_capacity(fields.get("max_capacity"))
    category = _validate_category(fields.get("category"))
    _validate_length(title, "title", TITLE_MIN, TITLE_MAX)
    _validate_length(location, "location", LOCATION_MIN, LOCATION_MAX)

    normalized = dict(fields)
    normalized.update(
        title=title,
        description=description,
        location=location,
        start_time_utc=start,
        end_time_utc=end,
        category=category,
    )
    return normalized


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_event(db: Session, event_id: str, for_update: bool = False) -> Event:
    """Fetch an event or raise NotFoundError.

    ``for_update`` re-reads the row under a row lock and overwrites any stale
    copy already in the session.
    """
    query = db.query(Event).filter(Event.event_id == str(event_id))
    if for_update:
        query = query.with_for_update().populate_existing()
    event = query.first()
    if not event:
        raise NotFoundError("Event not found", "event_not_found")
    return event


def list_events(
    db: Session,
    category: Optional[EventCategory] = None,
    include_cancelled: bool = False,
    upcoming_only: bool = False,
    clock: Clock = utcnow,
) -> list[Event]:
    """List non-deleted events ordered by start time."""
    query = db.query(Event).filter(Event.deleted_at.is_(None))
    if category:
        query = query.filter(Event.category == category)
    if not include_cancelled:
        query = query.filter(Event.cancelled_at.is_(None))
    if upcoming_only:
        query = query.filter(Event.start_time_utc > clock())
    return query.order_by(Event.start_time_utc).all()


def _require_member(db: Session, member_id: str) -> Member:
    member = db.query(Member).filter(Member.member_id == str(member_id)).first()
    if not member:
        raise NotFoundError("Member not found", "member_not_found")
    return member


def _ensure_mutable(event: Event) -> None:
    if event.is_cancelled():
        raise InvalidStateError("Cannot modify a cancelled event", "cancelled")
    if event.is_deleted():
        raise InvalidStateError("Cannot modify a deleted event", "deleted")


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def create_event(
    db: Session,
    title: str,
    description: str,
    location: str,
    start_utc: datetime,
    end_utc: datetime,
    category: EventCategory,
    created_by_id: str,
    max_capacity: Optional[int] = None,
    image_url: Optional[str] = None,
) -> Event:
    """Create an event after validating every field."""
    fields = validate_event_fields({
        "title": title,
        "description": description,
        "location": location,
        "start_time_utc": start_utc,
        "end_time_utc": end_utc,
        "category": category,
        "max_capacity": max_capacity,
        "image_url": image_url,
    })
    if not created_by_id or not str(created_by_id).strip():
        raise ValidationError("Event creator ID is required", "creator_required")
    _require_member(db, created_by_id)

    event = Event(created_by_id=str(created_by_id), **fields)
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s) by member %s", event.title, event.event_id, created_by_id)
    return event


def update_event(
    db: Session,
    event_id: str,
    updates: dict[str, Any],
    clock: Clock = utcnow,
) -> Event:
    """Partially update an active event; the merged result is validated as a whole.

    Changing capacity never promotes or demotes existing RSVPs.
    """
    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}", "invalid_field")

    with event_transaction(db, event_id):
        event = get_event(db, event_id, for_update=True)
        _ensure_mutable(event)

        merged = {field: getattr(event, field) for field in UPDATABLE_FIELDS}
        merged.update(updates)
        fields = validate_event_fields(merged)

        for field in updates:
            setattr(event, field, fields[field])
        event.updated_at = clock()
        db.commit()

    db.refresh(event)
    logger.info("Updated event %s (%s)", event_id, ", ".join(sorted(updates)) or "no fields")
    return event


def delete_event(db: Session, event_id: str, clock: Clock = utcnow) -> Event:
    """Soft-delete an event. Deleted events disappear from listings and accept no claims."""
    with event_transaction(db, event_id):
        event = get_event(db, event_id, for_update=True)
        if event.is_deleted():
            raise InvalidStateError("Event is already deleted", "deleted")
        now = clock()
        event.deleted_at = now
        event.updated_at = now
        db.commit()

    db.refresh(event)
    logger.info("Deleted event %s", event_id)
    return event


def cancel_event(
    db: Session,
    event_id: str,
    actor_id: str,
    reason: Optional[str] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    clock: Clock = utcnow,
) -> EventCancellation:
    """Cancel an event and queue a cancellation notice for each active attendee.

    The affected-attendee count is taken from the RSVP set before the
    transition and does not depend on whether any notice is delivered.
    """
    if reason is not None:
        reason = reason.strip() or None
        if reason and len(reason) > REASON_MAX:
            raise ValidationError(f"Cancellation reason cannot exceed {REASON_MAX} characters", "reason_too_long")

    with event_transaction(db, event_id):
        event = get_event(db, event_id, for_update=True)
        if event.is_cancelled():
            raise InvalidStateError("Event is already cancelled", "cancelled")
        if event.is_deleted():
            raise InvalidStateError("Cannot cancel a deleted event", "deleted")
        _require_member(db, actor_id)

        rsvps = db.query(EventRSVP).filter(EventRSVP.event_id == event.event_id).all()
        active_member_ids = [r.member_id for r in rsvps if r.status in ACTIVE_STATUSES]

        now = clock()
        transitioned = (
            db.query(Event)
            .filter(
                Event.event_id == event.event_id,
                Event.cancelled_at.is_(None),
                Event.deleted_at.is_(None),
            )
            .update(
                {
                    Event.cancelled_at: now,
                    Event.cancelled_by_id: str(actor_id),
                    Event.cancel_reason: reason,
                    Event.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        if transitioned != 1:
            raise InvalidStateError("Event is already cancelled", "cancelled")
        db.commit()

    cancelled = get_event(db, event_id, for_update=False)
    result = EventCancellation(
        event_id=cancelled.event_id,
        title=cancelled.title,
        cancelled_at=ensure_utc(cancelled.cancelled_at),
        cancel_reason=cancelled.cancel_reason,
        affected_attendees=len(active_member_ids),
    )
    logger.info(
        "Cancelled event %s by member %s (reason: %s); %d attendees affected",
        event_id, actor_id, reason, result.affected_attendees,
    )

    if dispatcher is not None and active_member_ids:
        dispatcher.dispatch_cancellation_notice(active_member_ids, EventSnapshot.from_event(cancelled), reason)
    return result
