"""EventMember ORM model — a member embedded in exactly one event."""
import enum
from sqlalchemy import Column, String, Integer, BigInteger, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from app.database import Base


class MemberRole(str, enum.Enum):
    creator = "creator"
    admin = "admin"
    participant = "participant"


class AvailabilityStatus(str, enum.Enum):
    available = "available"
    unavailable = "unavailable"
    tentative = "tentative"
    invited = "invited"


class EventMember(Base):
    __tablename__ = "event_members"

    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), primary_key=True, index=True)
    position = Column(Integer, nullable=False)  # 0 = original creator
    role = Column(SAEnum(MemberRole), nullable=False, default=MemberRole.participant)
    availability_status = Column(SAEnum(AvailabilityStatus), nullable=False, default=AvailabilityStatus.invited)
    custom_padding_after = Column(BigInteger, nullable=True)

    event = relationship("Event", back_populates="members")
