"""Fire-and-forget notification dispatch.

Services call the ``dispatch_*`` methods only after their transaction has
committed. Each call is handed to a worker pool and returns immediately; the
worker opens its own session to resolve member details, then calls the
notifier. Nothing raised on either side of the hand-off reaches the caller:
delivery is best-effort and at-most-once, with no retry.
"""
import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.database import SessionLocal
from app.models.member import Member
from app.models.rsvp import RSVPStatus
from app.services.notifications import EventSnapshot, LoggingNotifier, Notifier, Recipient

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        notifier: Notifier,
        session_factory: Callable[[], Session],
        executor: Optional[Executor] = None,
        max_workers: int = 4,
    ):
        self.notifier = notifier
        self.session_factory = session_factory
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="notify"
        )

    # -- public API (called from request threads) --------------------------

    def dispatch_claim_confirmation(self, member_id: str, event: EventSnapshot, status: RSVPStatus) -> None:
        self._submit("claim confirmation", self._send_claim_confirmation, member_id, event, status)

    def dispatch_waitlist_promotion(self, member_id: str, event: EventSnapshot) -> None:
        self._submit("waitlist promotion", self._send_waitlist_promotion, member_id, event)

    def dispatch_cancellation_notice(
        self, member_ids: Iterable[str], event: EventSnapshot, reason: Optional[str]
    ) -> None:
        self._submit("event cancellation", self._send_cancellation_notices, list(member_ids), event, reason)

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)

    # -- hand-off ----------------------------------------------------------

    def _submit(self, kind: str, fn, *args) -> None:
        try:
            self.executor.submit(self._run, kind, fn, *args)
        except Exception:
            logger.exception("Could not schedule %s notification", kind)

    def _run(self, kind: str, fn, *args) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception("%s notification failed", kind.capitalize())

    # -- worker side -------------------------------------------------------

    def _load_recipients(self, member_ids: list[str]) -> dict[str, Recipient]:
        with self.session_factory() as session:
            members = session.query(Member).filter(Member.member_id.in_(member_ids)).all()
            return {m.member_id: Recipient.from_member(m) for m in members}

    def _send_claim_confirmation(self, member_id: str, event: EventSnapshot, status: RSVPStatus) -> None:
        recipient = self._load_recipients([member_id]).get(member_id)
        if recipient is None:
            logger.warning("Member %s not found; skipping %s notice for event %s", member_id, status.value, event.event_id)
            return
        self.notifier.send_claim_confirmation(recipient, event, status)
        logger.info("Sent %s notice to member %s for event %s", status.value, member_id, event.event_id)

    def _send_waitlist_promotion(self, member_id: str, event: EventSnapshot) -> None:
        recipient = self._load_recipients([member_id]).get(member_id)
        if recipient is None:
            logger.warning("Member %s not found; skipping promotion notice for event %s", member_id, event.event_id)
            return
        self.notifier.send_waitlist_promotion(recipient, event)
        logger.info("Sent waitlist promotion notice to member %s for event %s", member_id, event.event_id)

    def _send_cancellation_notices(self, member_ids: list[str], event: EventSnapshot, reason: Optional[str]) -> tuple[int, int]:
        """One notice per member; a failure for one member never stops the rest."""
        recipients = self._load_recipients(member_ids) if member_ids else {}
        sent = failed = 0
        for member_id in member_ids:
            recipient = recipients.get(member_id)
            if recipient is None:
                logger.warning("Member %s not found; skipping cancellation notice", member_id)
                failed += 1
                continue
            try:
                self.notifier.send_event_cancellation(recipient, event, reason)
                sent += 1
            except Exception:
                logger.exception(
                    "Failed to send cancellation notice to member %s for event %s", member_id, event.event_id
                )
                failed += 1
        logger.info(
            "Event %s cancellation notices: %d recipients, %d sent, %d failed",
            event.event_id, len(member_ids), sent, failed,
        )
        return sent, failed


_dispatcher: Optional[NotificationDispatcher] = None
_dispatcher_lock = threading.Lock()


def get_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency returning the process-wide dispatcher, created on first use."""
    global _dispatcher
    with _dispatcher_lock:
        if _dispatcher is None:
            _dispatcher = NotificationDispatcher(
                LoggingNotifier(), SessionLocal, max_workers=settings.NOTIFICATION_WORKERS
            )
        return _dispatcher


def shutdown_dispatcher() -> None:
    global _dispatcher
    with _dispatcher_lock:
        dispatcher, _dispatcher = _dispatcher, None
    if dispatcher is not None:
        dispatcher.shutdown(wait=True)
