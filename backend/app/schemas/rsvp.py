"""Pydantic schemas for RSVPs."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.models.rsvp import RSVPStatus


class RSVPCreate(BaseModel):
    member_id: str
    notes: Optional[str] = None


class RSVPCancelRequest(BaseModel):
    member_id: str


class RSVPOut(BaseModel):
    rsvp_id: str
    event_id: str
    member_id: str
    status: RSVPStatus
    notes: Optional[str] = None
    claimed_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClaimOut(BaseModel):
    rsvp_id: str
    event_id: str
    member_id: str
    status: RSVPStatus
    is_waitlisted: bool
    available_spots: Optional[int] = None  # None = unlimited
    claimed_at: datetime
    message: str


class CancelClaimOut(BaseModel):
    success: bool = True
    rsvp_id: str
    status: RSVPStatus
    waitlist_promoted: bool
    promoted_member_id: Optional[str] = None
    message: str


class EventRSVPsOut(BaseModel):
    event_id: str
    event_title: str
    total_rsvps: int
    confirmed_count: int
    waitlisted_count: int
    cancelled_count: int
    max_capacity: Optional[int] = None
    available_spots: Optional[int] = None
    rsvps: list[RSVPOut] = []
