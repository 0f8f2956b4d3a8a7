"""Pydantic schemas for Events."""
from __future__ import annotations
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel

from app.models.event import EventStatus, SchedulingMethod, Visibility
from app.models.event_mutation import ActionType
from app.models.member import AvailabilityStatus, MemberRole


class TimeRangeSchema(BaseModel):
    start: int
    end: int


class MemberIn(BaseModel):
    user_id: str
    role: str = "participant"


class MemberOut(BaseModel):
    user_id: str
    role: MemberRole
    availability_status: AvailabilityStatus
    custom_padding_after: Optional[int] = None

    model_config = {"from_attributes": True}


class EventCreate(BaseModel):
    name: str
    description: Optional[str] = None
    members: Optional[list[MemberIn]] = None  # defaults to [actor as creator]
    scheduling_method: str = "flexible"
    duration: int
    time_window: Optional[TimeRangeSchema] = None
    scheduled_time: Optional[int] = None
    status: Optional[str] = None
    visibility: Optional[str] = None
    blackout_periods: list[TimeRangeSchema] = []
    preferred_times: list[TimeRangeSchema] = []
    daily_start_constraints: list[TimeRangeSchema] = []


class EventUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    members: Optional[list[MemberIn]] = None
    scheduling_method: Optional[str] = None
    duration: Optional[int] = None
    time_window: Optional[TimeRangeSchema] = None
    scheduled_time: Optional[int] = None
    status: Optional[str] = None
    visibility: Optional[str] = None
    blackout_periods: Optional[list[TimeRangeSchema]] = None
    preferred_times: Optional[list[TimeRangeSchema]] = None
    daily_start_constraints: Optional[list[TimeRangeSchema]] = None
    version: Optional[int] = None  # optimistic locking, checked when supplied


class EventOut(BaseModel):
    event_id: str
    event_code: str
    name: str
    description: str
    members: list[MemberOut] = []
    scheduling_method: SchedulingMethod
    duration: int
    time_window: Optional[TimeRangeSchema] = None
    status: EventStatus
    scheduled_time: Optional[int] = None
    visibility: Visibility
    blackout_periods: list[TimeRangeSchema] = []
    preferred_times: list[TimeRangeSchema] = []
    daily_start_constraints: list[TimeRangeSchema] = []
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EventListOut(BaseModel):
    total: int
    limit: int
    offset: int
    events: list[EventOut]


class BlackoutChange(TimeRangeSchema):
    version: Optional[int] = None


class RoleUpdate(BaseModel):
    role: str


class MemberSettingsUpdate(BaseModel):
    availability_status: Optional[str] = None
    custom_padding_after: Optional[int] = None


class MemberSettingsOut(BaseModel):
    event_id: str
    user_id: str
    availability_status: AvailabilityStatus
    custom_padding_after: Optional[int] = None


class MutationOut(BaseModel):
    mutation_id: str
    event_id: str
    actor_user_id: Optional[str] = None
    action_type: ActionType
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    before_snapshot: Optional[dict[str, Any]] = None
    after_snapshot: Optional[dict[str, Any]] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AdvisoriesOut(BaseModel):
    event_id: str
    scheduled_time: Optional[int] = None
    timezone: str
    local_start: Optional[str] = None
    blackout_conflicts: list[TimeRangeSchema] = []
    in_preferred_time: Optional[bool] = None
    daily_start_ok: Optional[bool] = None
    availability: dict[str, int]
