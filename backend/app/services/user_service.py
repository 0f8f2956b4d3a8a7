"""User service — the identity collaborator and personal blackout periods."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.errors import ConflictError, Forbidden, NotFound, UnauthorizedError, ValidationError
from app.models.user import User
from app.services.constraint_validator import range_violations
from app.services.event_service import remove_user_from_events
from app.services.intervals import TimeRange, add_and_merge, ranges_from_dicts, ranges_to_dicts, subtract

logger = logging.getLogger(__name__)

DISPLAY_NAME_MAX_LENGTH = 100


def create_user(db: Session, display_name: str) -> User:
    name = (display_name or "").strip()
    if not name or len(name) > DISPLAY_NAME_MAX_LENGTH:
        raise ValidationError.single(
            "display_name", f"Display name must be 1-{DISPLAY_NAME_MAX_LENGTH} characters",
        )
    if db.query(User).filter(User.display_name == name).first():
        raise ConflictError(f"Display name '{name}' is already taken", retryable=False)

    user = User(display_name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s (%s)", user.user_id, user.display_name)
    return user


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.display_name).all()


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


def delete_user(db: Session, actor_user_id: Optional[str], user_id: str) -> dict[str, int]:
    """Delete a user after detaching it from every event.

    The event cleanup commits first; if the user row then fails to delete,
    calling this again finishes the job.
    """
    _require_self(actor_user_id, user_id)
    user = get_user(db, user_id)
    summary = remove_user_from_events(db, user_id)
    db.delete(user)
    db.commit()
    logger.info("Deleted user %s", user_id)
    return summary


def _require_self(actor_user_id: Optional[str], user_id: str) -> None:
    """Users manage only their own account."""
    if not actor_user_id:
        raise UnauthorizedError("Unauthorized")
    if actor_user_id != user_id:
        logger.warning("User %s tried to modify user %s", actor_user_id, user_id)
        raise Forbidden("Users can only modify their own account")


def _checked_range(period: dict[str, int]) -> TimeRange:
    delta = TimeRange.from_dict(period)
    violations = range_violations("blackout_periods", [delta])
    if violations:
        raise ValidationError(violations)
    return delta


def add_user_blackout_period(
    db: Session, actor_user_id: Optional[str], user_id: str, period: dict[str, int],
) -> User:
    """Add a personal blackout period, merged with overlapping or touching ones."""
    _require_self(actor_user_id, user_id)
    delta = _checked_range(period)
    user = get_user(db, user_id)
    user.blackout_periods = ranges_to_dicts(add_and_merge(ranges_from_dicts(user.blackout_periods), delta))
    db.commit()
    db.refresh(user)
    logger.info("Added blackout period %s-%s for user %s", delta.start, delta.end, user_id)
    return user


def remove_user_blackout_period(
    db: Session, actor_user_id: Optional[str], user_id: str, period: dict[str, int],
) -> User:
    """Cut a range out of the personal blackout periods."""
    _require_self(actor_user_id, user_id)
    delta = _checked_range(period)
    user = get_user(db, user_id)
    user.blackout_periods = ranges_to_dicts(subtract(ranges_from_dicts(user.blackout_periods), delta))
    db.commit()
    db.refresh(user)
    logger.info("Removed blackout period %s-%s for user %s", delta.start, delta.end, user_id)
    return user
