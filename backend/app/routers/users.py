"""User API routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.user import BlackoutPeriod, UserCreate, UserDeleteOut, UserOut
from app.services import user_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    """Create a new user with a unique display name."""
    return user_service.create_user(db, payload.display_name)


@router.get("/", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db)):
    """List all users."""
    return user_service.list_users(db)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db)):
    """Fetch a single user by ID."""
    return user_service.get_user(db, user_id)


@router.delete("/{user_id}", response_model=UserDeleteOut)
def delete_user(
    user_id: str,
    actor_user_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Delete the user and detach it from every event it belonged to."""
    summary = user_service.delete_user(db, actor_user_id, user_id)
    return {"user_id": user_id, **summary}


@router.post("/{user_id}/blackout-periods", response_model=UserOut)
def add_blackout_period(
    user_id: str,
    payload: BlackoutPeriod,
    actor_user_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return user_service.add_user_blackout_period(db, actor_user_id, user_id, payload.model_dump())


@router.post("/{user_id}/blackout-periods/remove", response_model=UserOut)
def remove_blackout_period(
    user_id: str,
    payload: BlackoutPeriod,
    actor_user_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return user_service.remove_user_blackout_period(db, actor_user_id, user_id, payload.model_dump())
