"""Per-event mutual exclusion for check-then-act sequences.

Claims, claim cancellations and event-level transitions all read the event's
RSVP set, decide, then write. Two of those running against the same event at
once could both see the last free seat, so each runs under the event's lock
until its transaction has committed. Locks for different events are
independent.

The registry is process-local. Across processes the services additionally
take a row lock on the event (``SELECT ... FOR UPDATE``).
"""
import threading
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class EventLockRegistry:
    """One lock per event id; idle entries are dropped."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    @contextmanager
    def hold(self, event_id) -> Iterator[None]:
        key = str(event_id)
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.holders += 1

        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._entries[key]

    def active_keys(self) -> list[str]:
        with self._guard:
            return list(self._entries)


event_locks = EventLockRegistry()


@contextmanager
def event_transaction(db: Session, event_id) -> Iterator[None]:
    """Hold the event's lock for the body; roll back if the body raises.

    The body is expected to commit before returning.
    """
    with event_locks.hold(event_id):
        try:
            yield
        except Exception:
            db.rollback()
            raise
