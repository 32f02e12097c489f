"""RSVP API routes: claim, cancel, and list an event's RSVPs."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.rsvp import RSVPStatus
from app.schemas.rsvp import (
    RSVPCreate,
    RSVPCancelRequest,
    RSVPOut,
    ClaimOut,
    CancelClaimOut,
    EventRSVPsOut,
)
from app.services import rsvp_service
from app.services.clock import Clock, get_clock
from app.services.notification_dispatcher import NotificationDispatcher, get_dispatcher

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{event_id}/rsvp", response_model=ClaimOut, status_code=status.HTTP_201_CREATED)
def rsvp_to_event(
    event_id: str,
    payload: RSVPCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """RSVP to an event: confirmed while seats remain, waitlisted once full."""
    outcome = rsvp_service.claim_event(
        db,
        event_id=event_id,
        member_id=payload.member_id,
        notes=payload.notes,
        dispatcher=dispatcher,
        clock=clock,
    )
    rsvp = outcome.rsvp
    return ClaimOut(
        rsvp_id=rsvp.rsvp_id,
        event_id=rsvp.event_id,
        member_id=rsvp.member_id,
        status=rsvp.status,
        is_waitlisted=outcome.is_waitlisted,
        available_spots=outcome.available_spots,
        claimed_at=rsvp.claimed_at,
        message=outcome.message,
    )


@router.post("/{event_id}/rsvp/cancel", response_model=CancelClaimOut)
def cancel_rsvp(
    event_id: str,
    payload: RSVPCancelRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Cancel an RSVP; a freed seat is handed to the earliest waitlisted member."""
    outcome = rsvp_service.cancel_claim(
        db,
        event_id=event_id,
        member_id=payload.member_id,
        dispatcher=dispatcher,
        clock=clock,
    )
    return CancelClaimOut(
        rsvp_id=outcome.rsvp.rsvp_id,
        status=outcome.rsvp.status,
        waitlist_promoted=outcome.waitlist_promoted,
        promoted_member_id=outcome.promoted_member_id,
        message=outcome.message,
    )


@router.get("/{event_id}/rsvps", response_model=EventRSVPsOut)
def list_event_rsvps(
    event_id: str,
    status_filter: Optional[RSVPStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    """RSVPs of an event in claim order, with per-status counts."""
    summary = rsvp_service.get_event_rsvps(db, event_id, status=status_filter)
    return EventRSVPsOut(
        event_id=summary.event.event_id,
        event_title=summary.event.title,
        total_rsvps=summary.total_rsvps,
        confirmed_count=summary.confirmed_count,
        waitlisted_count=summary.waitlisted_count,
        cancelled_count=summary.cancelled_count,
        max_capacity=summary.event.max_capacity,
        available_spots=summary.available_spots,
        rsvps=[RSVPOut.model_validate(r) for r in summary.rsvps],
    )
