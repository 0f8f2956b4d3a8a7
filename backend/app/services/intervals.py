"""Interval algebra over time ranges.

Used for blackout periods (events and users). All functions are pure and
return new lists; inputs are never mutated.
"""
from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True, order=True)
class TimeRange:
    """A ``[start, end)`` range of integer timestamps (ms) or minutes of day."""

    start: int
    end: int

    def to_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeRange":
        return cls(start=data["start"], end=data["end"])


def ranges_from_dicts(items: Iterable[dict[str, Any]] | None) -> list[TimeRange]:
    return [TimeRange.from_dict(item) for item in items or []]


def ranges_to_dicts(ranges: Iterable[TimeRange]) -> list[dict[str, int]]:
    return [r.to_dict() for r in ranges]


def overlaps(a: TimeRange, b: TimeRange) -> bool:
    """Half-open overlap test; touching ranges do not overlap."""
    return a.start < b.end and b.start < a.end


def merge_all(ranges: Iterable[TimeRange]) -> list[TimeRange]:
    """Sort by start and merge overlapping or adjacent ranges.

    ``current.start <= last.end`` is the single merge condition, so
    ``[100, 200]`` and ``[200, 300]`` collapse into ``[100, 300]``.
    The result does not depend on the input order.
    """
    merged: list[TimeRange] = []
    for current in sorted(ranges):
        if merged and current.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = TimeRange(last.start, max(last.end, current.end))
        else:
            merged.append(current)
    return merged


def add_and_merge(existing: Iterable[TimeRange], new_range: TimeRange) -> list[TimeRange]:
    return merge_all([*existing, new_range])


def subtract(existing: Iterable[TimeRange], delete_range: TimeRange) -> list[TimeRange]:
    """Remove ``delete_range`` from every range, splitting where needed.

    Output keeps the input order; subtraction never reorders ranges.
    """
    result: list[TimeRange] = []
    for period in existing:
        if delete_range.end <= period.start or delete_range.start >= period.end:
            result.append(period)
            continue

        keeps_head = delete_range.start > period.start
        keeps_tail = delete_range.end < period.end
        if keeps_head:
            result.append(TimeRange(period.start, delete_range.start))
        if keeps_tail:
            result.append(TimeRange(delete_range.end, period.end))
    return result
