"""Event ORM model: the capacity-bounded resource members RSVP to."""
import uuid
import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, String, Text, DateTime, Integer, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.database import Base
from app.services.clock import ensure_utc


class EventCategory(str, enum.Enum):
    WORSHIP = "WORSHIP"
    BIBLE_STUDY = "BIBLE_STUDY"
    COMMUNITY = "COMMUNITY"
    FELLOWSHIP = "FELLOWSHIP"

    @property
    def display_name(self) -> str:
        return {
            EventCategory.WORSHIP: "Worship Service",
            EventCategory.BIBLE_STUDY: "Bible Study",
            EventCategory.COMMUNITY: "Community Outreach",
            EventCategory.FELLOWSHIP: "Fellowship",
        }[self]


class Event(Base):
    __tablename__ = "events"

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(500), nullable=False)
    start_time_utc = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time_utc = Column(DateTime(timezone=True), nullable=False)
    category = Column(SAEnum(EventCategory), nullable=False)
    max_capacity = Column(Integer, nullable=True)  # NULL = unlimited
    image_url = Column(String(500), nullable=True)
    created_by_id = Column(String(36), ForeignKey("members.member_id"), nullable=False)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_id = Column(String(36), ForeignKey("members.member_id"), nullable=True)
    cancel_reason = Column(String(500), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    rsvps = relationship("EventRSVP", back_populates="event", order_by="EventRSVP.claimed_at")

    def is_cancelled(self) -> bool:
        return self.cancelled_at is not None

    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def is_active(self) -> bool:
        """Not cancelled and not deleted."""
        return not self.is_cancelled() and not self.is_deleted()

    def has_started(self, now: datetime) -> bool:
        return now >= ensure_utc(self.start_time_utc)

    def has_ended(self, now: datetime) -> bool:
        return now >= ensure_utc(self.end_time_utc)

    def is_in_progress(self, now: datetime) -> bool:
        return self.has_started(now) and not self.has_ended(now)

    def can_accept_claims(self, now: datetime) -> bool:
        return self.is_active() and not self.has_started(now)

    def has_capacity_limit(self) -> bool:
        return self.max_capacity is not None

    def is_at_capacity(self, confirmed_count: int) -> bool:
        if self.max_capacity is None:
            return False
        return confirmed_count >= self.max_capacity

    def available_spots(self, confirmed_count: int) -> Optional[int]:
        """Free seats, or None when the event has no capacity limit."""
        if self.max_capacity is None:
            return None
        return max(0, self.max_capacity - confirmed_count)
