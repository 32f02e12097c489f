"""Notification payloads, the transport contract, and the logging transport.

Workers never touch ORM objects: the request thread snapshots the event into
an ``EventSnapshot`` before handing work off, and the worker resolves members
into ``Recipient`` values with its own session.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytz

from app.config import settings
from app.models.event import Event, EventCategory
from app.models.member import Member
from app.models.rsvp import RSVPStatus
from app.services.clock import ensure_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventSnapshot:
    event_id: str
    title: str
    location: str
    category: EventCategory
    start_time_utc: datetime
    end_time_utc: datetime

    @classmethod
    def from_event(cls, event: Event) -> "EventSnapshot":
        return cls(
            event_id=event.event_id,
            title=event.title,
            location=event.location,
            category=event.category,
            start_time_utc=ensure_utc(event.start_time_utc),
            end_time_utc=ensure_utc(event.end_time_utc),
        )


@dataclass(frozen=True)
class Recipient:
    member_id: str
    email: str
    first_name: str
    last_name: str
    timezone: str = "UTC"

    @classmethod
    def from_member(cls, member: Member) -> "Recipient":
        return cls(
            member_id=member.member_id,
            email=member.email,
            first_name=member.first_name,
            last_name=member.last_name,
            timezone=member.default_timezone or settings.DEFAULT_TIMEZONE,
        )


@dataclass(frozen=True)
class Message:
    to: str
    subject: str
    body: str


def format_event_time(event: EventSnapshot, tz_name: str) -> str:
    """Render the event's time range in the recipient's timezone."""
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning("Unknown timezone %r, falling back to %s", tz_name, settings.DEFAULT_TIMEZONE)
        tz = pytz.timezone(settings.DEFAULT_TIMEZONE)
    start = event.start_time_utc.astimezone(tz)
    end = event.end_time_utc.astimezone(tz)
    if start.date() == end.date():
        return f"{start:%A, %B %d, %Y} {start:%H:%M}-{end:%H:%M} {start.tzname()}"
    return f"{start:%A, %B %d, %Y %H:%M} - {end:%A, %B %d, %Y %H:%M} {start.tzname()}"


def _event_url(event: EventSnapshot) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/events/{event.event_id}"


def render_claim_confirmation(recipient: Recipient, event: EventSnapshot, status: RSVPStatus) -> Message:
    when = format_event_time(event, recipient.timezone)
    if status == RSVPStatus.WAITLISTED:
        subject = f"Waitlisted: {event.title}"
        intro = (
            "You have been added to the waitlist for this event. It is currently at full "
            "capacity; we will let you know if a spot opens up."
        )
    else:
        subject = f"RSVP Confirmed: {event.title}"
        intro = "Your RSVP has been confirmed. We look forward to seeing you!"
    body = "\n".join([
        f"Hello {recipient.first_name},",
        "",
        intro,
        "",
        event.title,
        f"When: {when}",
        f"Where: {event.location}",
        f"Category: {event.category.display_name}",
        "",
        f"Details: {_event_url(event)}",
        "",
        settings.ORGANIZATION_NAME,
    ])
    return Message(to=recipient.email, subject=subject, body=body)


def render_waitlist_promotion(recipient: Recipient, event: EventSnapshot) -> Message:
    when = format_event_time(event, recipient.timezone)
    body = "\n".join([
        f"Hello {recipient.first_name},",
        "",
        "A spot has opened up and your RSVP is now confirmed.",
        "",
        event.title,
        f"When: {when}",
        f"Where: {event.location}",
        "",
        f"Details: {_event_url(event)}",
        "",
        settings.ORGANIZATION_NAME,
    ])
    return Message(to=recipient.email, subject=f"You're in: {event.title}", body=body)


def render_event_cancellation(recipient: Recipient, event: EventSnapshot, reason: Optional[str]) -> Message:
    when = format_event_time(event, recipient.timezone)
    lines = [
        f"Hello {recipient.first_name},",
        "",
        "We regret to inform you that the following event has been cancelled:",
        "",
        event.title,
        f"Originally scheduled: {when}",
        f"Location: {event.location}",
    ]
    if reason:
        lines += ["", f"Reason: {reason}"]
    lines += [
        "",
        "We apologize for any inconvenience.",
        "",
        settings.ORGANIZATION_NAME,
    ]
    return Message(to=recipient.email, subject=f"Event Cancelled: {event.title}", body="\n".join(lines))


class Notifier(ABC):
    """Delivery transport. Implementations may block and may raise."""

    @abstractmethod
    def send_claim_confirmation(self, recipient: Recipient, event: EventSnapshot, status: RSVPStatus) -> None:
        pass

    @abstractmethod
    def send_waitlist_promotion(self, recipient: Recipient, event: EventSnapshot) -> None:
        pass

    @abstractmethod
    def send_event_cancellation(self, recipient: Recipient, event: EventSnapshot, reason: Optional[str]) -> None:
        pass


class LoggingNotifier(Notifier):
    """Renders each message and writes it to the log instead of a mail server."""

    def _deliver(self, message: Message) -> None:
        logger.info("Notification to %s: %s\n%s", message.to, message.subject, message.body)

    def send_claim_confirmation(self, recipient, event, status):
        self._deliver(render_claim_confirmation(recipient, event, status))

    def send_waitlist_promotion(self, recipient, event):
        self._deliver(render_waitlist_promotion(recipient, event))

    def send_event_cancellation(self, recipient, event, reason):
        self._deliver(render_event_cancellation(recipient, event, reason))
