"""EventRSVP ORM model: one member's claim on an event.

Claim history is append-only: cancelling sets status CANCELLED and a later
re-claim inserts a new row, so (event_id, member_id) is not unique. At most
one row per pair is active at a time.
"""
import uuid
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class RSVPStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    WAITLISTED = "WAITLISTED"
    CANCELLED = "CANCELLED"


ACTIVE_STATUSES = (RSVPStatus.CONFIRMED, RSVPStatus.WAITLISTED)


class EventRSVP(Base):
    __tablename__ = "event_rsvps"
    __table_args__ = (
        Index("ix_event_rsvps_event_status", "event_id", "status"),
        Index("ix_event_rsvps_event_member", "event_id", "member_id"),
    )

    rsvp_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.event_id"), nullable=False)
    member_id = Column(String(36), ForeignKey("members.member_id"), nullable=False)
    status = Column(SAEnum(RSVPStatus), nullable=False)
    notes = Column(String(500), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=False)  # waitlist ordering key
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    event = relationship("Event", back_populates="rsvps")

    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
