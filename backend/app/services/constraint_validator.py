"""Scheduling constraint validator.

A pure decision function: given the scheduling-relevant part of an event
after a patch has been applied, list every rule it breaks. No I/O, no
clock reads (``now_ms`` is passed in).
"""
from dataclasses import dataclass, field
from typing import Optional

from app.errors import ValidationError
from app.models.event import EventStatus, SchedulingMethod
from app.services.intervals import TimeRange, overlaps

MIN_DURATION_MS = 60_000
MINUTES_PER_DAY = 1440

# Fields that only make sense while a time is being negotiated
FLEXIBLE_ONLY_FIELDS = ("time_window", "blackout_periods", "preferred_times", "daily_start_constraints")


@dataclass
class ScheduleDraft:
    scheduling_method: SchedulingMethod
    status: EventStatus
    duration: int
    time_window: Optional[TimeRange] = None
    scheduled_time: Optional[int] = None
    blackout_periods: list[TimeRange] = field(default_factory=list)
    preferred_times: list[TimeRange] = field(default_factory=list)
    daily_start_constraints: list[TimeRange] = field(default_factory=list)


def _violation(field_name: str, message: str) -> dict[str, str]:
    return {"field": field_name, "message": message}


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def range_violations(field_name: str, ranges: list[TimeRange]) -> list[dict[str, str]]:
    """Absolute ranges (blackout/preferred): ``0 < start < end``."""
    violations = []
    for i, r in enumerate(ranges):
        if not (_is_int(r.start) and _is_int(r.end)):
            violations.append(_violation(field_name, f"Range {i} must have integer start and end"))
            continue
        if r.start <= 0:
            violations.append(_violation(field_name, f"Range {i} start must be a positive timestamp"))
        if r.end <= r.start:
            violations.append(_violation(field_name, f"Range {i} end must be after its start"))
    return violations


def daily_constraint_violations(ranges: list[TimeRange]) -> list[dict[str, str]]:
    """Minute-of-day ranges: ``0 <= start < end <= 1440``."""
    violations = []
    for i, r in enumerate(ranges):
        if not (_is_int(r.start) and _is_int(r.end)):
            violations.append(_violation("daily_start_constraints", f"Range {i} must have integer start and end"))
            continue
        if r.start < 0 or r.end > MINUTES_PER_DAY:
            violations.append(_violation(
                "daily_start_constraints", f"Range {i} must lie within 0-{MINUTES_PER_DAY} minutes of the day",
            ))
        if r.end <= r.start:
            violations.append(_violation("daily_start_constraints", f"Range {i} end must be after its start"))
    return violations


def schedule_violations(
    draft: ScheduleDraft,
    *,
    now_ms: int,
    check_window_start: bool = True,
    enforce_blackout_exclusion: bool = False,
) -> list[dict[str, str]]:
    """Return every violated rule; an empty list means the draft is admissible.

    ``check_window_start`` re-checks that the time window opens in the
    future. Callers set it whenever the window (or the scheduling method)
    is being set, not merely on creation.
    """
    violations: list[dict[str, str]] = []

    if not _is_int(draft.duration) or draft.duration < MIN_DURATION_MS:
        violations.append(_violation("duration", f"Duration must be at least {MIN_DURATION_MS}ms (1 minute)"))
    duration_ok = not violations

    st = draft.scheduled_time
    if st is not None and not _is_int(st):
        violations.append(_violation("scheduled_time", "Scheduled time must be an integer timestamp"))
        st = None

    if draft.status == EventStatus.scheduling and draft.scheduled_time is not None:
        violations.append(_violation("scheduled_time", "Scheduled time must be absent while scheduling"))
    if draft.status in (EventStatus.scheduled, EventStatus.confirmed) and draft.scheduled_time is None:
        violations.append(_violation("scheduled_time", f"Scheduled time is required for {draft.status.value} events"))

    if draft.scheduling_method == SchedulingMethod.fixed:
        if st is not None and st <= 0:
            violations.append(_violation("scheduled_time", "Scheduled time must be a positive timestamp"))
        return violations

    window = draft.time_window
    if window is None:
        violations.append(_violation("time_window", "A time window is required for flexible scheduling"))
    elif not (_is_int(window.start) and _is_int(window.end)):
        violations.append(_violation("time_window", "Time window must have integer start and end"))
        window = None
    else:
        if check_window_start and window.start <= now_ms:
            violations.append(_violation("time_window", f"Time window start ({window.start}) must be in the future"))
        if window.end <= window.start:
            violations.append(_violation("time_window", f"Time window end ({window.end}) must be after its start"))

    if st is not None and window is not None and duration_ok:
        if st < window.start or st + draft.duration > window.end:
            violations.append(_violation(
                "scheduled_time",
                f"Scheduled time ({st}) is outside the allowed window or violates duration constraints",
            ))

    blackout_violations = range_violations("blackout_periods", draft.blackout_periods)
    violations.extend(blackout_violations)
    violations.extend(range_violations("preferred_times", draft.preferred_times))
    violations.extend(daily_constraint_violations(draft.daily_start_constraints))

    if enforce_blackout_exclusion and st is not None and duration_ok and not blackout_violations:
        slot = TimeRange(st, st + draft.duration)
        if any(overlaps(slot, b) for b in draft.blackout_periods):
            violations.append(_violation("scheduled_time", "Scheduled time falls inside a blackout period"))

    return violations


def validate_schedule(draft: ScheduleDraft, **kwargs) -> None:
    """Raise one aggregated ValidationError if the draft breaks any rule."""
    violations = schedule_violations(draft, **kwargs)
    if violations:
        raise ValidationError(violations)
