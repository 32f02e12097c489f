"""Pydantic schemas for Members."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr


class MemberCreate(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    default_timezone: str = "UTC"


class MemberUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    default_timezone: Optional[str] = None


class MemberOut(BaseModel):
    member_id: str
    first_name: str
    last_name: str
    email: str
    default_timezone: str
    created_at: datetime

    model_config = {"from_attributes": True}
