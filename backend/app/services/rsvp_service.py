"""RSVP service: admission, waitlist promotion and RSVP summaries.

Admission (``claim_event``) and promotion (``cancel_claim``) are both
read-decide-write sequences over the event's RSVP set. Each runs inside
``event_transaction`` so the confirmed count it decides on cannot change
before its own write commits. Notifications are queued only after commit.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from app.models.event import Event
from app.models.member import Member
from app.models.rsvp import EventRSVP, RSVPStatus, ACTIVE_STATUSES
from app.services.clock import Clock, ensure_utc, utcnow
from app.services.event_service import get_event
from app.services.locks import event_transaction
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.notifications import EventSnapshot

logger = logging.getLogger(__name__)

NOTES_MAX = 500


@dataclass
class ClaimOutcome:
    rsvp: EventRSVP
    available_spots: Optional[int]  # None = unlimited

    @property
    def is_waitlisted(self) -> bool:
        return self.rsvp.status == RSVPStatus.WAITLISTED

    @property
    def message(self) -> str:
        if self.is_waitlisted:
            return "Event is full. You have been added to the waitlist"
        return "RSVP confirmed successfully"


@dataclass
class CancelClaimOutcome:
    rsvp: EventRSVP
    waitlist_promoted: bool = False
    promoted_member_id: Optional[str] = None

    @property
    def message(self) -> str:
        if self.waitlist_promoted:
            return "RSVP cancelled successfully. A waitlisted attendee has been promoted."
        return "RSVP cancelled successfully"


@dataclass
class EventRSVPSummary:
    event: Event
    confirmed_count: int
    waitlisted_count: int
    cancelled_count: int
    rsvps: list[EventRSVP] = field(default_factory=list)

    @property
    def total_rsvps(self) -> int:
        return self.confirmed_count + self.waitlisted_count + self.cancelled_count

    @property
    def available_spots(self) -> Optional[int]:
        return self.event.available_spots(self.confirmed_count)


# ---------------------------------------------------------------------------
# Attendance store queries
# ---------------------------------------------------------------------------
def get_confirmed_count(db: Session, event_id: str) -> int:
    return (
        db.query(func.count(EventRSVP.rsvp_id))
        .filter(EventRSVP.event_id == str(event_id), EventRSVP.status == RSVPStatus.CONFIRMED)
        .scalar()
    )


def find_active_rsvp(db: Session, event_id: str, member_id: str) -> Optional[EventRSVP]:
    return (
        db.query(EventRSVP)
        .filter(
            EventRSVP.event_id == str(event_id),
            EventRSVP.member_id == str(member_id),
            EventRSVP.status.in_(ACTIVE_STATUSES),
        )
        .populate_existing()
        .first()
    )


def _has_cancelled_rsvp(db: Session, event_id: str, member_id: str) -> bool:
    return (
        db.query(EventRSVP.rsvp_id)
        .filter(
            EventRSVP.event_id == str(event_id),
            EventRSVP.member_id == str(member_id),
            EventRSVP.status == RSVPStatus.CANCELLED,
        )
        .first()
        is not None
    )


def _next_claimed_at(db: Session, event_id: str, now: datetime) -> datetime:
    """Claim timestamps are strictly increasing per event, even if the clock stalls."""
    latest = ensure_utc(
        db.query(func.max(EventRSVP.claimed_at)).filter(EventRSVP.event_id == str(event_id)).scalar()
    )
    if latest is not None and latest >= now:
        return latest + timedelta(microseconds=1)
    return now


def _next_waitlisted(db: Session, event_id: str) -> Optional[EventRSVP]:
    """Earliest waitlisted claim; rsvp_id breaks exact timestamp ties."""
    return (
        db.query(EventRSVP)
        .filter(EventRSVP.event_id == str(event_id), EventRSVP.status == RSVPStatus.WAITLISTED)
        .order_by(EventRSVP.claimed_at, EventRSVP.rsvp_id)
        .populate_existing()
        .first()
    )


# ---------------------------------------------------------------------------
# Admission
# ---------------------------------------------------------------------------
def claim_event(
    db: Session,
    event_id: str,
    member_id: str,
    notes: Optional[str] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    clock: Clock = utcnow,
) -> ClaimOutcome:
    """RSVP a member to an event: CONFIRMED while seats remain, else WAITLISTED."""
    if notes is not None and len(notes) > NOTES_MAX:
        raise ValidationError(f"RSVP notes cannot exceed {NOTES_MAX} characters", "notes_too_long")

    with event_transaction(db, event_id):
        event = get_event(db, event_id, for_update=True)
        now = clock()
        if not event.can_accept_claims(now):
            if event.is_cancelled():
                raise InvalidStateError("Cannot RSVP to a cancelled event", "cancelled")
            if event.is_deleted():
                raise InvalidStateError("Cannot RSVP to a deleted event", "deleted")
            raise InvalidStateError("Cannot RSVP to an event that has already started", "already_started")
        if not db.query(Member.member_id).filter(Member.member_id == str(member_id)).first():
            raise NotFoundError("Member not found", "member_not_found")
        if find_active_rsvp(db, event.event_id, member_id) is not None:
            raise ConflictError("You have already RSVPed to this event", "duplicate_claim")

        confirmed = get_confirmed_count(db, event.event_id)
        if event.is_at_capacity(confirmed):
            status = RSVPStatus.WAITLISTED
        else:
            status = RSVPStatus.CONFIRMED

        rsvp = EventRSVP(
            event_id=event.event_id,
            member_id=str(member_id),
            status=status,
            notes=notes,
            claimed_at=_next_claimed_at(db, event.event_id, now),
            updated_at=now,
        )
        db.add(rsvp)
        snapshot = EventSnapshot.from_event(event)
        if event.max_capacity is None:
            available = None
        elif status == RSVPStatus.CONFIRMED:
            available = max(0, event.max_capacity - confirmed - 1)
        else:
            available = max(0, event.max_capacity - confirmed)
        db.commit()

    db.refresh(rsvp)
    logger.info("Member %s RSVP'd to event %s: %s", member_id, event_id, status.value)

    if dispatcher is not None:
        dispatcher.dispatch_claim_confirmation(str(member_id), snapshot, status)
    return ClaimOutcome(rsvp=rsvp, available_spots=available)


# ---------------------------------------------------------------------------
# Cancellation + waitlist promotion
# ---------------------------------------------------------------------------
def cancel_claim(
    db: Session,
    event_id: str,
    member_id: str,
    dispatcher: Optional[NotificationDispatcher] = None,
    clock: Clock = utcnow,
) -> CancelClaimOutcome:
    """Cancel a member's RSVP; a freed confirmed seat goes to the earliest waitlisted claim.

    Promotion only happens for finite-capacity events that are still active,
    and only while the remaining confirmed count is below capacity (capacity
    may have been lowered below the confirmed count by an update).
    """
    promoted: Optional[EventRSVP] = None

    with event_transaction(db, event_id):
        event = get_event(db, event_id, for_update=True)
        now = clock()
        if event.has_started(now):
            raise InvalidStateError(
                "Cannot cancel RSVP for an event that has already started", "already_started"
            )
        rsvp = find_active_rsvp(db, event.event_id, member_id)
        if rsvp is None:
            if _has_cancelled_rsvp(db, event.event_id, member_id):
                raise InvalidStateError("RSVP is already cancelled", "already_cancelled")
            raise NotFoundError("RSVP not found", "rsvp_not_found")

        was_confirmed = rsvp.status == RSVPStatus.CONFIRMED
        rsvp.status = RSVPStatus.CANCELLED
        rsvp.updated_at = now
        db.flush()

        if (
            was_confirmed
            and event.has_capacity_limit()
            and event.is_active()
            and not event.is_at_capacity(get_confirmed_count(db, event.event_id))
        ):
            promoted = _next_waitlisted(db, event.event_id)
            if promoted is not None:
                promoted.status = RSVPStatus.CONFIRMED
                promoted.updated_at = now

        snapshot = EventSnapshot.from_event(event)
        promoted_member_id = promoted.member_id if promoted is not None else None
        db.commit()

    db.refresh(rsvp)
    logger.info("Member %s cancelled RSVP to event %s", member_id, event_id)
    if promoted_member_id is not None:
        logger.info("Member %s promoted from waitlist for event %s", promoted_member_id, event_id)
        if dispatcher is not None and settings.NOTIFY_WAITLIST_PROMOTION:
            dispatcher.dispatch_waitlist_promotion(promoted_member_id, snapshot)

    return CancelClaimOutcome(
        rsvp=rsvp,
        waitlist_promoted=promoted_member_id is not None,
        promoted_member_id=promoted_member_id,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_event_rsvps(db: Session, event_id: str, status: Optional[RSVPStatus] = None) -> EventRSVPSummary:
    """All RSVPs of an event in claim order, with per-status counts."""
    event = get_event(db, event_id)
    rsvps = (
        db.query(EventRSVP)
        .filter(EventRSVP.event_id == event.event_id)
        .order_by(EventRSVP.claimed_at, EventRSVP.rsvp_id)
        .all()
    )
    counts = {s: 0 for s in RSVPStatus}
    for r in rsvps:
        counts[r.status] += 1
    if status is not None:
        rsvps = [r for r in rsvps if r.status == status]
    return EventRSVPSummary(
        event=event,
        confirmed_count=counts[RSVPStatus.CONFIRMED],
        waitlisted_count=counts[RSVPStatus.WAITLISTED],
        cancelled_count=counts[RSVPStatus.CANCELLED],
        rsvps=rsvps,
    )
