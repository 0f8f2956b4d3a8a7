"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel


class UserCreate(BaseModel):
    display_name: str


class BlackoutPeriod(BaseModel):
    start: int
    end: int


class UserOut(BaseModel):
    user_id: str
    display_name: str
    blackout_periods: list[BlackoutPeriod] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class UserDeleteOut(BaseModel):
    user_id: str
    events_updated: int
    events_deleted: int
