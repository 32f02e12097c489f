"""Event API routes: delegates to event_service for invariant enforcement."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.event import Event, EventCategory
from app.schemas.event import (
    EventCreate,
    EventUpdate,
    EventOut,
    EventDetailOut,
    EventCancelRequest,
    EventCancellationOut,
)
from app.services import event_service, rsvp_service
from app.services.clock import Clock, get_clock
from app.services.notification_dispatcher import NotificationDispatcher, get_dispatcher

logger = logging.getLogger(__name__)
router = APIRouter()


def _detail(db: Session, event: Event) -> EventDetailOut:
    confirmed = rsvp_service.get_confirmed_count(db, event.event_id)
    return EventDetailOut(
        **EventOut.model_validate(event).model_dump(),
        confirmed_count=confirmed,
        available_spots=event.available_spots(confirmed),
    )


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, db: Session = Depends(get_db)):
    """Create a new event after validating every field."""
    return event_service.create_event(
        db=db,
        title=payload.title,
        description=payload.description,
        location=payload.location,
        start_utc=payload.start_time_utc,
        end_utc=payload.end_time_utc,
        category=payload.category,
        created_by_id=payload.created_by_id,
        max_capacity=payload.max_capacity,
        image_url=payload.image_url,
    )


@router.get("/", response_model=list[EventOut])
def list_events(
    category: Optional[EventCategory] = Query(None),
    include_cancelled: bool = Query(False),
    upcoming_only: bool = Query(False),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """List events with optional filters. Deleted events are never listed."""
    return event_service.list_events(
        db,
        category=category,
        include_cancelled=include_cancelled,
        upcoming_only=upcoming_only,
        clock=clock,
    )


@router.get("/{event_id}", response_model=EventDetailOut)
def get_event(event_id: str, db: Session = Depends(get_db)):
    """Fetch a single event with its confirmed count and free seats."""
    return _detail(db, event_service.get_event(db, event_id))


@router.patch("/{event_id}", response_model=EventDetailOut)
def update_event(
    event_id: str,
    payload: EventUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Update an active event (partial update)."""
    event = event_service.update_event(
        db,
        event_id=event_id,
        updates=payload.model_dump(exclude_unset=True),
        clock=clock,
    )
    return _detail(db, event)


@router.delete("/{event_id}", response_model=EventOut)
def delete_event(event_id: str, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    """Soft-delete an event."""
    return event_service.delete_event(db, event_id=event_id, clock=clock)


@router.post("/{event_id}/cancel", response_model=EventCancellationOut)
def cancel_event(
    event_id: str,
    payload: EventCancelRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Cancel an event; active attendees are notified in the background."""
    result = event_service.cancel_event(
        db,
        event_id=event_id,
        actor_id=payload.cancelled_by_id,
        reason=payload.reason,
        dispatcher=dispatcher,
        clock=clock,
    )
    return EventCancellationOut(
        event_id=result.event_id,
        title=result.title,
        cancelled_at=result.cancelled_at,
        cancel_reason=result.cancel_reason,
        affected_attendees=result.affected_attendees,
        message=result.message,
    )
