"""Pytest fixtures — SQLite file database, fake clock and in-memory notifier."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

from concurrent.futures import Executor, Future
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from app.database import Base, get_db
from app.main import app
from app.services.clock import get_clock
from app.services.notification_dispatcher import NotificationDispatcher, get_dispatcher
from app.services.notifications import Notifier

# Import all models so they register with Base.metadata
from app.models.member import Member      # noqa: F401
from app.models.event import Event        # noqa: F401
from app.models.rsvp import EventRSVP     # noqa: F401

SQLITE_URL = "sqlite:///./test.db"

# Frozen "now" for every test; events are scheduled relative to it
NOW = datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock — only moves when a test moves it."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


class InMemoryNotifier(Notifier):
    """Records every notice; members in ``fail_for`` (or everyone, with ``fail_all``) raise."""

    def __init__(self):
        self.confirmations = []
        self.promotions = []
        self.cancellations = []
        self.fail_for = set()
        self.fail_all = False

    def _maybe_fail(self, recipient):
        if self.fail_all or recipient.member_id in self.fail_for:
            raise RuntimeError(f"mail server rejected {recipient.email}")

    def send_claim_confirmation(self, recipient, event, status):
        self._maybe_fail(recipient)
        self.confirmations.append((recipient.member_id, event.event_id, status))

    def send_waitlist_promotion(self, recipient, event):
        self._maybe_fail(recipient)
        self.promotions.append((recipient.member_id, event.event_id))

    def send_event_cancellation(self, recipient, event, reason):
        self._maybe_fail(recipient)
        self.cancellations.append((recipient.member_id, event.event_id, reason))


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def clock():
    return FakeClock()


@pytest.fixture(scope="function")
def notifier():
    return InMemoryNotifier()


@pytest.fixture(scope="function")
def dispatcher(notifier, session_factory):
    """Dispatcher that delivers synchronously so tests can assert on the notifier."""
    return NotificationDispatcher(notifier, session_factory, executor=InlineExecutor())


@pytest.fixture(scope="function")
def client(session_factory, clock, dispatcher):
    """FastAPI TestClient with database, clock and dispatcher dependencies overridden."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: create rows via the API, return the response JSON dict
# ---------------------------------------------------------------------------
_member_seq = 0


def create_test_member(client: TestClient, first_name: str = "Test", last_name: str = "Member",
                       email: str = None, tz: str = "America/New_York") -> dict:
    """Helper — POST /api/members and return response JSON."""
    global _member_seq
    _member_seq += 1
    resp = client.post("/api/members/", json={
        "first_name": first_name,
        "last_name": last_name,
        "email": email or f"member{_member_seq}@example.org",
        "default_timezone": tz,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def event_payload(created_by_id: str, title: str = "Sunday Potluck", max_capacity: int = None,
                  start_offset_hours: int = 48, duration_hours: int = 2,
                  category: str = "FELLOWSHIP") -> dict:
    """Helper — a valid event creation payload starting relative to NOW."""
    start = NOW + timedelta(hours=start_offset_hours)
    end = start + timedelta(hours=duration_hours)
    return {
        "title": title,
        "description": "Bring a dish to share.",
        "location": "Fellowship Hall",
        "start_time_utc": start.isoformat(),
        "end_time_utc": end.isoformat(),
        "category": category,
        "created_by_id": created_by_id,
        "max_capacity": max_capacity,
    }


def create_test_event(client: TestClient, created_by_id: str, **kwargs) -> dict:
    """Helper — POST /api/events and return response JSON."""
    resp = client.post("/api/events/", json=event_payload(created_by_id, **kwargs))
    assert resp.status_code == 201, resp.text
    return resp.json()


def rsvp(client: TestClient, event_id: str, member_id: str, notes: str = None):
    """Helper — POST /api/events/{id}/rsvp and return the raw response."""
    body = {"member_id": member_id}
    if notes is not None:
        body["notes"] = notes
    return client.post(f"/api/events/{event_id}/rsvp", json=body)


def cancel_rsvp(client: TestClient, event_id: str, member_id: str):
    """Helper — POST /api/events/{id}/rsvp/cancel and return the raw response."""
    return client.post(f"/api/events/{event_id}/rsvp/cancel", json={"member_id": member_id})
