"""Pydantic schemas for Events."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.models.event import EventCategory


class EventCreate(BaseModel):
    title: str
    description: str
    location: str
    start_time_utc: datetime
    end_time_utc: datetime
    category: EventCategory
    created_by_id: str
    max_capacity: Optional[int] = None  # None = unlimited
    image_url: Optional[str] = None


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start_time_utc: Optional[datetime] = None
    end_time_utc: Optional[datetime] = None
    category: Optional[EventCategory] = None
    max_capacity: Optional[int] = None
    image_url: Optional[str] = None


class EventOut(BaseModel):
    event_id: str
    title: str
    description: str
    location: str
    start_time_utc: datetime
    end_time_utc: datetime
    category: EventCategory
    max_capacity: Optional[int] = None
    image_url: Optional[str] = None
    created_by_id: str
    cancelled_at: Optional[datetime] = None
    cancelled_by_id: Optional[str] = None
    cancel_reason: Optional[str] = None
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EventDetailOut(EventOut):
    confirmed_count: int
    available_spots: Optional[int] = None  # None = unlimited


class EventCancelRequest(BaseModel):
    cancelled_by_id: str
    reason: Optional[str] = None


class EventCancellationOut(BaseModel):
    event_id: str
    title: str
    cancelled_at: datetime
    cancel_reason: Optional[str] = None
    affected_attendees: int
    message: str

    model_config = {"from_attributes": True}
