"""Event repository — the transactional store behind the event aggregate."""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.errors import ConflictError, StorageError
from app.models.event import Event
from app.models.event_mutation import EventMutation, ActionType
from app.models.member import EventMember

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventRepository:
    """Loads and writes events inside one SQLAlchemy session.

    ``save`` enforces the caller's expected version; the mapper's
    ``version_id_col`` makes the UPDATE itself conditional, so a concurrent
    writer surfaces as StaleDataError at commit time.
    """

    def __init__(self, db: Session):
        self.db = db

    def find(self, event_id: str) -> Optional[Event]:
        return self.db.query(Event).filter(Event.event_id == event_id).first()

    def find_by_code(self, code: str) -> Optional[Event]:
        return self.db.query(Event).filter(Event.event_code == code).first()

    def code_exists(self, code: str) -> bool:
        return self.db.query(Event.event_id).filter(Event.event_code == code).first() is not None

    def find_by_member(self, user_id: str) -> list[Event]:
        return (
            self.db.query(Event)
            .join(EventMember)
            .filter(EventMember.user_id == user_id)
            .all()
        )

    def create(self, event: Event) -> Event:
        self.db.add(event)
        self.db.flush()
        return event

    def check_version(self, event: Event, expected_version: Optional[int]) -> None:
        if expected_version is not None and event.version != expected_version:
            raise ConflictError(
                f"Version mismatch: expected {event.version}, got {expected_version}. Re-fetch and retry."
            )

    def save(self, event: Event, expected_version: Optional[int] = None) -> Event:
        self.check_version(event, expected_version)
        event.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        return event

    def delete(self, event: Event) -> None:
        self.db.delete(event)
        self.db.flush()

    def record(
        self,
        event_id: str,
        actor_user_id: Optional[str],
        action_type: ActionType,
        before: Optional[dict[str, Any]],
        after: Optional[dict[str, Any]],
    ) -> EventMutation:
        """Append a ledger row in the current transaction."""
        mutation = EventMutation(
            event_id=event_id,
            actor_user_id=actor_user_id,
            action_type=action_type,
            from_status=before.get("status") if before else None,
            to_status=after.get("status") if after else None,
            before_snapshot=before,
            after_snapshot=after,
        )
        self.db.add(mutation)
        return mutation

    def history(self, event_id: str) -> list[EventMutation]:
        return (
            self.db.query(EventMutation)
            .filter(EventMutation.event_id == event_id)
            .order_by(EventMutation.created_at)
            .all()
        )

    def run_in_transaction(self, fn: Callable[[], T], *, retries: Optional[int] = None) -> T:
        """Run read-modify-validate-write ``fn`` and commit it atomically.

        A lost race is retried from a fresh read; after ``retries`` attempts
        it surfaces as ConflictError. Any other failure rolls back and
        propagates.
        """
        attempts = retries or settings.MAX_TRANSACTION_RETRIES
        for attempt in range(1, attempts + 1):
            try:
                result = fn()
                self.db.commit()
                return result
            except StaleDataError:
                self.db.rollback()
                logger.warning("Concurrent write detected (attempt %d/%d), retrying", attempt, attempts)
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.exception("Storage failure during event transaction")
                raise StorageError(str(exc)) from exc
            except Exception:
                self.db.rollback()
                raise
        raise ConflictError("The event was modified concurrently. Re-fetch and retry.")
