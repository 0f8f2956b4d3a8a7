"""Availability service — scheduling advisories for an event's chosen time.

Read-only. Reports what the negotiation inputs say about the current
scheduled_time without blocking anything:
- busy blocks: blackout periods overlapping the slot
- preferred: whether the slot lies inside a preferred time
- daily start: whether the local start minute satisfies the daily constraints
- member availability tallies
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Any, Optional

import pytz
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import Forbidden, NotFound, ValidationError
from app.models.event import Event
from app.models.member import AvailabilityStatus
from app.repositories.event_repository import EventRepository
from app.services.intervals import TimeRange, overlaps, ranges_from_dicts

logger = logging.getLogger(__name__)


def _local_start_minute(scheduled_time: int, tz) -> tuple[int, str]:
    local = datetime.fromtimestamp(scheduled_time / 1000, tz=pytz.utc).astimezone(tz)
    return local.hour * 60 + local.minute, local.isoformat()


def scheduling_advisories(event: Event, *, timezone_name: Optional[str] = None) -> dict[str, Any]:
    """Evaluate the event's scheduled time against its own constraints.

    ``timezone_name`` (IANA) interprets daily_start_constraints; it falls
    back to Settings.SCHEDULING_TIMEZONE.
    """
    timezone_name = timezone_name or settings.SCHEDULING_TIMEZONE
    try:
        tz = pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        raise ValidationError.single("timezone", f"Unknown timezone '{timezone_name}'")

    tally = Counter({status.value: 0 for status in AvailabilityStatus})
    tally.update(m.availability_status.value for m in event.members)

    result: dict[str, Any] = {
        "event_id": event.event_id,
        "scheduled_time": event.scheduled_time,
        "timezone": timezone_name,
        "local_start": None,
        "blackout_conflicts": [],
        "in_preferred_time": None,
        "daily_start_ok": None,
        "availability": dict(tally),
    }
    if event.scheduled_time is None:
        return result

    slot = TimeRange(event.scheduled_time, event.scheduled_time + event.duration)
    result["blackout_conflicts"] = [
        b.to_dict() for b in ranges_from_dicts(event.blackout_periods) if overlaps(slot, b)
    ]

    preferred = ranges_from_dicts(event.preferred_times)
    if preferred:
        result["in_preferred_time"] = any(p.start <= slot.start and slot.end <= p.end for p in preferred)

    minute, local_start = _local_start_minute(event.scheduled_time, tz)
    result["local_start"] = local_start
    daily = ranges_from_dicts(event.daily_start_constraints)
    if daily:
        result["daily_start_ok"] = any(c.start <= minute < c.end for c in daily)

    return result


def get_scheduling_advisories(
    db: Session,
    actor_user_id: Optional[str],
    event_id: str,
    timezone_name: Optional[str] = None,
) -> dict[str, Any]:
    """Members only."""
    event = EventRepository(db).find(event_id)
    if event is None:
        raise NotFound("Event not found")
    if event.find_member(actor_user_id) is None:
        logger.warning("User %s not authorized to view advisories for event %s", actor_user_id, event_id)
        raise Forbidden("Not a member of this event")

    result = scheduling_advisories(event, timezone_name=timezone_name)
    logger.info(
        "Advisories for event %s: %d blackout conflict(s)", event_id, len(result["blackout_conflicts"]),
    )
    return result
