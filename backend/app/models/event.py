"""Event ORM model — the aggregate root."""
import uuid
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Integer, BigInteger, JSON, Enum as SAEnum
from sqlalchemy.orm import relationship
from app.database import Base


class EventStatus(str, enum.Enum):
    scheduling = "scheduling"
    scheduled = "scheduled"
    confirmed = "confirmed"
    cancelled = "cancelled"


class Visibility(str, enum.Enum):
    draft = "draft"
    public = "public"
    private = "private"


class SchedulingMethod(str, enum.Enum):
    fixed = "fixed"
    flexible = "flexible"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Event(Base):
    __tablename__ = "events"

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_code = Column(String(32), nullable=False, unique=True, index=True)
    name = Column(String(50), nullable=False)
    description = Column(String(1000), nullable=False, default="")
    scheduling_method = Column(SAEnum(SchedulingMethod), nullable=False, default=SchedulingMethod.flexible)
    duration = Column(BigInteger, nullable=False)
    time_window_start = Column(BigInteger, nullable=True)
    time_window_end = Column(BigInteger, nullable=True)
    status = Column(SAEnum(EventStatus), nullable=False, default=EventStatus.scheduling, index=True)
    scheduled_time = Column(BigInteger, nullable=True, index=True)
    visibility = Column(SAEnum(Visibility), nullable=False, default=Visibility.draft)
    blackout_periods = Column(JSON, nullable=False, default=list)
    preferred_times = Column(JSON, nullable=False, default=list)
    daily_start_constraints = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    members = relationship(
        "EventMember",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventMember.position",
    )

    # Every UPDATE is conditional on the version that was read
    __mapper_args__ = {"version_id_col": version}

    @property
    def time_window(self) -> dict[str, int] | None:
        if self.time_window_start is None or self.time_window_end is None:
            return None
        return {"start": self.time_window_start, "end": self.time_window_end}

    @property
    def original_creator_id(self) -> str | None:
        return self.members[0].user_id if self.members else None

    def find_member(self, user_id: str | None):
        if user_id is None:
            return None
        return next((m for m in self.members if m.user_id == user_id), None)
