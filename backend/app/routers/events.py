"""Event API routes — delegates to event_service for invariant enforcement."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.event import (
    AdvisoriesOut,
    BlackoutChange,
    EventCreate,
    EventListOut,
    EventOut,
    EventUpdate,
    MemberSettingsOut,
    MemberSettingsUpdate,
    MutationOut,
    RoleUpdate,
)
from app.services import availability_service, event_service

logger = logging.getLogger(__name__)
router = APIRouter()

ACTOR = Query(None, description="ID of the user performing the request")


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, actor_user_id: Optional[str] = ACTOR, db: Session = Depends(get_db)):
    """Create a new event; the actor becomes its original creator."""
    return event_service.create_event(db, actor_user_id, payload.model_dump(exclude_unset=True))


@router.get("/", response_model=EventListOut)
def list_events(
    actor_user_id: Optional[str] = ACTOR,
    created_by: Optional[str] = Query(None),
    admin_of: Optional[str] = Query(None),
    participant_of: Optional[str] = Query(None),
    member_of: Optional[str] = Query(None),
    visibility: Optional[str] = Query(None),
    event_status: Optional[list[str]] = Query(None, alias="status"),
    limit: int = Query(event_service.DEFAULT_LIST_LIMIT),
    offset: int = Query(0),
    db: Session = Depends(get_db),
):
    """List events visible to the actor. User filters are AND-combined."""
    total, events = event_service.list_events(
        db,
        actor_user_id,
        created_by=created_by,
        admin_of=admin_of,
        participant_of=participant_of,
        member_of=member_of,
        visibility=visibility,
        statuses=event_status,
        limit=limit,
        offset=offset,
    )
    return {"total": total, "limit": limit, "offset": offset, "events": events}


@router.get("/{event_id_or_code}", response_model=EventOut)
def get_event(event_id_or_code: str, actor_user_id: Optional[str] = ACTOR, db: Session = Depends(get_db)):
    """Fetch a single event by ID or share code."""
    return event_service.get_event(db, actor_user_id, event_id_or_code)


@router.patch("/{event_id}", response_model=EventOut)
def update_event(
    event_id: str,
    payload: EventUpdate,
    actor_user_id: Optional[str] = ACTOR,
    db: Session = Depends(get_db),
):
    """Partially update an event (creators/admins, optimistic locking when version is sent)."""
    patch = payload.model_dump(exclude_unset=True, exclude={"version"})
    return event_service.update_event(db, actor_user_id, event_id, patch, expected_version=payload.version)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: str, actor_user_id: Optional[str] = ACTOR, db: Session = Depends(get_db)):
    """Delete an event (original creator only, before confirmation)."""
    event_service.delete_event(db, actor_user_id, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{event_id}/members/{user_id}/role", response_model=EventOut)
def update_member_role(
    event_id: str,
    user_id: str,
    payload: RoleUpdate,
    actor_user_id: Optional[str] = ACTOR,
    db: Session = Depends(get_db),
):
    return event_service.update_member_role(db, actor_user_id, event_id, user_id, payload.role)


@router.get("/{event_id}/settings", response_model=MemberSettingsOut)
def get_member_settings(event_id: str, actor_user_id: Optional[str] = ACTOR, db: Session = Depends(get_db)):
    return event_service.get_own_member_settings(db, actor_user_id, event_id)


@router.patch("/{event_id}/settings", response_model=MemberSettingsOut)
def update_member_settings(
    event_id: str,
    payload: MemberSettingsUpdate,
    actor_user_id: Optional[str] = ACTOR,
    db: Session = Depends(get_db),
):
    """Update the actor's own availability and padding for this event."""
    return event_service.update_own_member_settings(
        db, actor_user_id, event_id, payload.model_dump(exclude_unset=True),
    )


@router.post("/{event_id}/blackout-periods", response_model=EventOut)
def add_blackout_period(
    event_id: str,
    payload: BlackoutChange,
    actor_user_id: Optional[str] = ACTOR,
    db: Session = Depends(get_db),
):
    return event_service.add_event_blackout_period(
        db, actor_user_id, event_id, payload.model_dump(exclude={"version"}), expected_version=payload.version,
    )


@router.post("/{event_id}/blackout-periods/remove", response_model=EventOut)
def remove_blackout_period(
    event_id: str,
    payload: BlackoutChange,
    actor_user_id: Optional[str] = ACTOR,
    db: Session = Depends(get_db),
):
    return event_service.remove_event_blackout_period(
        db, actor_user_id, event_id, payload.model_dump(exclude={"version"}), expected_version=payload.version,
    )


@router.post("/{event_id}/code", response_model=EventOut)
def regenerate_code(event_id: str, actor_user_id: Optional[str] = ACTOR, db: Session = Depends(get_db)):
    """Issue a new share code (creators/admins)."""
    return event_service.regenerate_event_code(db, actor_user_id, event_id)


@router.get("/{event_id}/history", response_model=list[MutationOut])
def get_history(event_id: str, actor_user_id: Optional[str] = ACTOR, db: Session = Depends(get_db)):
    return event_service.get_event_history(db, actor_user_id, event_id)


@router.get("/{event_id}/advisories", response_model=AdvisoriesOut)
def get_advisories(
    event_id: str,
    actor_user_id: Optional[str] = ACTOR,
    timezone: Optional[str] = Query(None, description="IANA zone for daily start constraints"),
    db: Session = Depends(get_db),
):
    return availability_service.get_scheduling_advisories(db, actor_user_id, event_id, timezone)
