"""EventMutation ORM model — append-only ledger of every event write.

Rows outlive the event they describe (no foreign key), so a deletion is
still visible to whoever consumes the ledger.
"""
import uuid
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, JSON, Enum as SAEnum
from app.database import Base


class ActionType(str, enum.Enum):
    create = "create"
    update = "update"
    cancel = "cancel"
    delete = "delete"
    member_settings = "member_settings"
    code_reset = "code_reset"
    member_removed = "member_removed"


class EventMutation(Base):
    __tablename__ = "event_mutations"

    mutation_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), nullable=False, index=True)
    actor_user_id = Column(String(36), nullable=True)
    action_type = Column(SAEnum(ActionType), nullable=False)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=True)
    before_snapshot = Column(JSON, nullable=True)
    after_snapshot = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
