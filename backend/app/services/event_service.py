"""Core event service — the event aggregate and its state machine.

Responsibilities:
- Authorization hook: creators/admins edit, original creator deletes,
  members manage their own settings (role_governor)
- Lifecycle: status and visibility move only along the transition tables
- Re-opening negotiation: changing a negotiated field on a scheduled or
  confirmed event drops it back to scheduling and clears scheduled_time
- Constraint validation (constraint_validator) with one aggregated error
- Blackout periods stored merged and sorted (intervals)
- One transaction per mutation, optimistic locking via Event.version
- Mutation ledger (EventMutations) for every write
"""
import logging
import time
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import Forbidden, NotFound, UnauthorizedError, ValidationError
from app.models.event import Event, EventStatus, SchedulingMethod, Visibility
from app.models.event_mutation import ActionType, EventMutation
from app.models.member import AvailabilityStatus, EventMember, MemberRole
from app.repositories.event_repository import EventRepository
from app.repositories.user_directory import SqlUserDirectory, UserDirectory
from app.services import role_governor
from app.services.codes import generate_code, looks_like_code
from app.services.constraint_validator import (
    FLEXIBLE_ONLY_FIELDS,
    ScheduleDraft,
    range_violations,
    schedule_violations,
)
from app.services.intervals import (
    TimeRange,
    add_and_merge,
    merge_all,
    ranges_from_dicts,
    ranges_to_dicts,
    subtract,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def current_millis() -> int:
    return int(time.time() * 1000)


STATUS_TRANSITIONS: dict[EventStatus, frozenset[EventStatus]] = {
    EventStatus.scheduling: frozenset({
        EventStatus.scheduling, EventStatus.scheduled, EventStatus.confirmed, EventStatus.cancelled,
    }),
    EventStatus.scheduled: frozenset({
        EventStatus.scheduled, EventStatus.scheduling, EventStatus.confirmed, EventStatus.cancelled,
    }),
    EventStatus.confirmed: frozenset({
        EventStatus.confirmed, EventStatus.scheduling, EventStatus.cancelled,
    }),
    EventStatus.cancelled: frozenset(),
}

VISIBILITY_TRANSITIONS: dict[Visibility, frozenset[Visibility]] = {
    Visibility.draft: frozenset({Visibility.draft, Visibility.public, Visibility.private}),
    Visibility.public: frozenset({Visibility.public, Visibility.private}),
    Visibility.private: frozenset({Visibility.private, Visibility.public}),
}

INITIAL_STATUSES = frozenset({EventStatus.scheduling, EventStatus.scheduled, EventStatus.confirmed})

# Changing any of these on a scheduled/confirmed event re-opens negotiation
NEGOTIATION_FIELDS = frozenset({
    "scheduled_time", "duration", "time_window", "scheduling_method",
    "blackout_periods", "preferred_times", "daily_start_constraints",
})

DELETABLE_STATUSES = frozenset({EventStatus.scheduling, EventStatus.scheduled})

NAME_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 1000
DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200


def event_snapshot(event: Event) -> dict[str, Any]:
    """Serialize an event to a JSON-safe dict for the mutation ledger."""
    return {
        "event_id": event.event_id,
        "name": event.name,
        "description": event.description,
        "members": [
            {"user_id": m.user_id, "role": m.role.value, "availability_status": m.availability_status.value}
            for m in event.members
        ],
        "scheduling_method": event.scheduling_method.value,
        "duration": event.duration,
        "time_window": event.time_window,
        "status": event.status.value,
        "scheduled_time": event.scheduled_time,
        "visibility": event.visibility.value,
        "blackout_periods": list(event.blackout_periods or []),
        "preferred_times": list(event.preferred_times or []),
        "daily_start_constraints": list(event.daily_start_constraints or []),
        "version": event.version,
    }


# ---------------------------------------------------------------------------
# Field parsing: problems are collected, not raised
# ---------------------------------------------------------------------------

def _violation(field: str, message: str) -> dict[str, str]:
    return {"field": field, "message": message}


def _parse_name(value, field, violations):
    if not isinstance(value, str):
        violations.append(_violation(field, "Event name is required"))
        return value
    name = value.strip()
    if not name:
        violations.append(_violation(field, "Event name is too short (minimum 1 character)"))
    elif len(name) > NAME_MAX_LENGTH:
        violations.append(_violation(field, f"Event name is too long (maximum {NAME_MAX_LENGTH} characters)"))
    return name


def _parse_description(value, field, violations):
    if value is None:
        return ""
    if not isinstance(value, str):
        violations.append(_violation(field, "Event description must be text"))
        return value
    description = value.strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        violations.append(_violation(
            field, f"Event description is too long (maximum {DESCRIPTION_MAX_LENGTH} characters)",
        ))
    return description


def _enum_parser(enum_cls):
    def parse(value, field, violations):
        try:
            return enum_cls(value)
        except ValueError:
            allowed = ", ".join(e.value for e in enum_cls)
            violations.append(_violation(field, f"Invalid {field} '{value}' (expected one of: {allowed})"))
            return None
    return parse


def _parse_range(item, field, violations, index=None) -> Optional[TimeRange]:
    where = f"Range {index}" if index is not None else "Range"
    if not isinstance(item, dict) or "start" not in item or "end" not in item:
        violations.append(_violation(field, f"{where} must have start and end"))
        return None
    return TimeRange(item["start"], item["end"])


def _parse_ranges(value, field, violations) -> list[TimeRange]:
    if value is None:
        return []
    if not isinstance(value, list):
        violations.append(_violation(field, "Must be a list of ranges"))
        return []
    ranges = [_parse_range(item, field, violations, i) for i, item in enumerate(value)]
    return [r for r in ranges if r is not None]


def _parse_time_window(value, field, violations) -> Optional[TimeRange]:
    if value is None:
        return None
    return _parse_range(value, field, violations)


def _parse_members(value, field, violations) -> list[tuple[str, MemberRole]]:
    if not isinstance(value, list):
        violations.append(_violation(field, "Members must be a list"))
        return []
    members = []
    for i, item in enumerate(value):
        if not isinstance(item, dict) or not item.get("user_id"):
            violations.append(_violation(field, f"Member {i} must have a user_id"))
            continue
        role = _enum_parser(MemberRole)(item.get("role") or MemberRole.participant.value, field, violations)
        if role is not None:
            members.append((str(item["user_id"]), role))
    return members


def _passthrough(value, field, violations):
    return value


_FIELD_PARSERS = {
    "name": _parse_name,
    "description": _parse_description,
    "members": _parse_members,
    "status": _enum_parser(EventStatus),
    "visibility": _enum_parser(Visibility),
    "scheduling_method": _enum_parser(SchedulingMethod),
    "duration": _passthrough,
    "time_window": _parse_time_window,
    "scheduled_time": _passthrough,
    "blackout_periods": _parse_ranges,
    "preferred_times": _parse_ranges,
    "daily_start_constraints": _parse_ranges,
}


def _parse_fields(fields: dict[str, Any], violations: list[dict[str, str]]) -> dict[str, Any]:
    unknown = sorted(set(fields) - role_governor.EDITABLE_FIELDS)
    for key in unknown:
        violations.append(_violation(key, f"Field '{key}' cannot be set on an event"))
    return {
        key: _FIELD_PARSERS[key](value, key, violations)
        for key, value in fields.items()
        if key in _FIELD_PARSERS
    }


def _normalized_blackouts(ranges: list[TimeRange]) -> list[TimeRange]:
    if all(isinstance(r.start, int) and isinstance(r.end, int) for r in ranges):
        return merge_all(ranges)
    return list(ranges)


def _current_doc(event: Event) -> dict[str, Any]:
    window = event.time_window
    return {
        "name": event.name,
        "description": event.description,
        "members": [(m.user_id, m.role) for m in event.members],
        "status": event.status,
        "visibility": event.visibility,
        "scheduling_method": event.scheduling_method,
        "duration": event.duration,
        "time_window": TimeRange.from_dict(window) if window else None,
        "scheduled_time": event.scheduled_time,
        "blackout_periods": ranges_from_dicts(event.blackout_periods),
        "preferred_times": ranges_from_dicts(event.preferred_times),
        "daily_start_constraints": ranges_from_dicts(event.daily_start_constraints),
    }


def _changed_fields(current: dict[str, Any], proposed: dict[str, Any]) -> set[str]:
    changed = set()
    for key, value in proposed.items():
        if key == "blackout_periods":
            if _normalized_blackouts(value) != current[key]:
                changed.add(key)
        elif value != current[key]:
            changed.add(key)
    return changed


def _clear_flexible_fields(doc: dict[str, Any]) -> None:
    """Fixed events carry no window or negotiation ranges."""
    doc["time_window"] = None
    for key in FLEXIBLE_ONLY_FIELDS:
        if key != "time_window":
            doc[key] = []


def _schedule_draft(doc: dict[str, Any]) -> ScheduleDraft:
    return ScheduleDraft(
        scheduling_method=doc["scheduling_method"],
        status=doc["status"],
        duration=doc["duration"],
        time_window=doc["time_window"],
        scheduled_time=doc["scheduled_time"],
        blackout_periods=doc["blackout_periods"],
        preferred_times=doc["preferred_times"],
        daily_start_constraints=doc["daily_start_constraints"],
    )


def _apply_doc(event: Event, doc: dict[str, Any]) -> None:
    event.name = doc["name"]
    event.description = doc["description"]
    event.status = doc["status"]
    event.visibility = doc["visibility"]
    event.scheduling_method = doc["scheduling_method"]
    event.duration = doc["duration"]
    window = doc["time_window"]
    event.time_window_start = window.start if window else None
    event.time_window_end = window.end if window else None
    event.scheduled_time = doc["scheduled_time"]
    event.blackout_periods = ranges_to_dicts(merge_all(doc["blackout_periods"]))
    event.preferred_times = ranges_to_dicts(doc["preferred_times"])
    event.daily_start_constraints = ranges_to_dicts(doc["daily_start_constraints"])


def _sync_members(event: Event, members: list[tuple[str, MemberRole]]) -> None:
    """Replace the member list, keeping settings of members that stay."""
    existing = {m.user_id: m for m in event.members}
    synced = []
    for position, (user_id, role) in enumerate(members):
        member = existing.get(user_id)
        if member is None:
            member = EventMember(user_id=user_id, availability_status=AvailabilityStatus.invited)
        member.role = role
        member.position = position
        synced.append(member)
    event.members = synced


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

def _require_actor(actor_user_id: Optional[str], action: str) -> str:
    if not actor_user_id:
        logger.warning("%s rejected: no actor identity", action)
        raise UnauthorizedError("Unauthorized")
    return actor_user_id


def _load(repo: EventRepository, event_id: str) -> Event:
    event = repo.find(event_id)
    if event is None:
        logger.warning("Event not found: %s", event_id)
        raise NotFound("Event not found")
    return event


def _require_editor(event: Event, actor_user_id: str) -> EventMember:
    """Only creators and admins may modify the event."""
    member = event.find_member(actor_user_id)
    if member is None or not role_governor.can_edit_event(member.role):
        logger.warning("User %s not authorized to edit event %s", actor_user_id, event.event_id)
        raise Forbidden("Not authorized to edit this event")
    return member


def _require_not_cancelled(event: Event) -> None:
    if event.status == EventStatus.cancelled:
        raise ValidationError.single("status", "Cancelled events cannot be modified")


def _check_member_patch(
    event: Event,
    actor: EventMember,
    proposed: list[tuple[str, MemberRole]],
    users: UserDirectory,
) -> None:
    """Structural invariants, then per-change authorization, then identities."""
    original_creator_id = event.original_creator_id
    violations = role_governor.member_list_violations(original_creator_id, proposed)
    if violations:
        raise ValidationError(violations)

    current = [(m.user_id, m.role) for m in event.members]
    changes = role_governor.diff_members(current, proposed)
    role_governor.authorize_member_changes(actor.user_id, actor.role, original_creator_id, changes)

    added = [c.user_id for c in changes if c.old_role is None]
    unknown = [user_id for user_id in added if not users.exists(user_id)]
    if unknown:
        raise ValidationError([_violation("members", f"Unknown user: {user_id}") for user_id in unknown])


def _check_status_transition(from_status: EventStatus, to_status: EventStatus) -> None:
    if to_status not in STATUS_TRANSITIONS[from_status]:
        raise ValidationError.single(
            "status", f"Cannot move an event from {from_status.value} to {to_status.value}",
        )


def _check_visibility_transition(from_visibility: Visibility, to_visibility: Visibility) -> None:
    if to_visibility not in VISIBILITY_TRANSITIONS[from_visibility]:
        raise ValidationError.single(
            "visibility", f"Cannot change visibility from {from_visibility.value} to {to_visibility.value}",
        )


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def create_event(
    db: Session,
    actor_user_id: Optional[str],
    fields: dict[str, Any],
    *,
    clock: Clock = current_millis,
    users: Optional[UserDirectory] = None,
) -> Event:
    """Create an event with the actor as original creator (members[0])."""
    actor_user_id = _require_actor(actor_user_id, "Create event")
    repo = EventRepository(db)
    users = users or SqlUserDirectory(db)

    def _create() -> Event:
        violations: list[dict[str, str]] = []
        parsed = _parse_fields(fields, violations)

        for required in ("name", "duration"):
            if parsed.get(required) is None and required not in {v["field"] for v in violations}:
                violations.append(_violation(required, f"{required} is required"))

        members = parsed.get("members") or [(actor_user_id, MemberRole.creator)]
        violations.extend(role_governor.member_list_violations(actor_user_id, members))
        for user_id in dict.fromkeys(u for u, _ in members):
            if not users.exists(user_id):
                violations.append(_violation("members", f"Unknown user: {user_id}"))

        method = parsed.get("scheduling_method") or SchedulingMethod.flexible
        scheduled_time = parsed.get("scheduled_time")
        status = parsed.get("status")
        if status is None:
            if scheduled_time is None:
                status = EventStatus.scheduling
            elif method == SchedulingMethod.fixed:
                status = EventStatus.confirmed
            else:
                status = EventStatus.scheduled
        elif status is not None and status not in INITIAL_STATUSES:
            violations.append(_violation("status", f"Events cannot be created as {status.value}"))

        doc = {
            "name": parsed.get("name"),
            "description": parsed.get("description", ""),
            "members": members,
            "status": status or EventStatus.scheduling,
            "visibility": parsed.get("visibility") or Visibility.draft,
            "scheduling_method": method,
            "duration": parsed.get("duration"),
            "time_window": parsed.get("time_window"),
            "scheduled_time": scheduled_time,
            "blackout_periods": parsed.get("blackout_periods", []),
            "preferred_times": parsed.get("preferred_times", []),
            "daily_start_constraints": parsed.get("daily_start_constraints", []),
        }
        if method == SchedulingMethod.fixed:
            _clear_flexible_fields(doc)

        violations.extend(schedule_violations(
            _schedule_draft(doc),
            now_ms=clock(),
            check_window_start=True,
            enforce_blackout_exclusion=settings.ENFORCE_BLACKOUT_EXCLUSION,
        ))
        if violations:
            logger.warning("Create event rejected for user %s: %s", actor_user_id, violations)
            raise ValidationError(violations)

        event = Event(
            event_code=generate_code(
                repo.code_exists,
                length=settings.EVENT_CODE_LENGTH,
                max_attempts=settings.EVENT_CODE_MAX_ATTEMPTS,
            ),
        )
        _apply_doc(event, doc)
        event.members = [
            EventMember(
                user_id=user_id,
                role=role,
                position=position,
                availability_status=AvailabilityStatus.available if position == 0 else AvailabilityStatus.invited,
            )
            for position, (user_id, role) in enumerate(members)
        ]
        repo.create(event)
        repo.record(event.event_id, actor_user_id, ActionType.create, None, event_snapshot(event))
        return event

    event = repo.run_in_transaction(_create)
    db.refresh(event)
    logger.info("Created event '%s' (%s) by user %s as %s", event.name, event.event_id, actor_user_id, event.status.value)
    return event


def get_event(db: Session, actor_user_id: Optional[str], event_id_or_code: str) -> Event:
    """Fetch by id or share code, subject to visibility rules."""
    repo = EventRepository(db)
    event = repo.find(event_id_or_code)
    if event is None and looks_like_code(event_id_or_code, length=settings.EVENT_CODE_LENGTH):
        event = repo.find_by_code(event_id_or_code)
    if event is None:
        raise NotFound("Event not found")
    if not role_governor.can_access(event, actor_user_id):
        logger.warning("User %s not authorized to view event %s", actor_user_id, event.event_id)
        raise Forbidden("Not authorized to view this event")
    return event


def list_events(
    db: Session,
    actor_user_id: Optional[str],
    *,
    created_by: Optional[str] = None,
    admin_of: Optional[str] = None,
    participant_of: Optional[str] = None,
    member_of: Optional[str] = None,
    visibility: Optional[str] = None,
    statuses: Optional[list[str]] = None,
    limit: int = DEFAULT_LIST_LIMIT,
    offset: int = 0,
) -> tuple[int, list[Event]]:
    """Filtered listing. User filters are AND-combined; access rules apply before paging."""
    violations: list[dict[str, str]] = []
    if not 1 <= limit <= MAX_LIST_LIMIT:
        violations.append(_violation("limit", f"limit must be between 1 and {MAX_LIST_LIMIT}"))
    if offset < 0:
        violations.append(_violation("offset", "offset must not be negative"))
    visibility_value = _enum_parser(Visibility)(visibility, "visibility", violations) if visibility else None
    status_values = [_enum_parser(EventStatus)(s, "status", violations) for s in statuses or []]
    if violations:
        raise ValidationError(violations)

    query = db.query(Event)
    role_filters = (
        (created_by, MemberRole.creator),
        (admin_of, MemberRole.admin),
        (participant_of, MemberRole.participant),
    )
    for user_id, role in role_filters:
        if user_id:
            query = query.filter(Event.members.any((EventMember.user_id == user_id) & (EventMember.role == role)))
    if member_of:
        query = query.filter(Event.members.any(EventMember.user_id == member_of))
    if visibility_value:
        query = query.filter(Event.visibility == visibility_value)
    if status_values:
        query = query.filter(Event.status.in_(status_values))

    visible = [e for e in query.order_by(Event.updated_at.desc()).all() if role_governor.can_access(e, actor_user_id)]
    return len(visible), visible[offset:offset + limit]


def _update_in_transaction(
    db: Session,
    actor_user_id: str,
    event_id: str,
    build_patch: Callable[[Event], dict[str, Any]],
    *,
    expected_version: Optional[int],
    clock: Clock,
    users: UserDirectory,
) -> Event:
    repo = EventRepository(db)

    def _update() -> Event:
        event = _load(repo, event_id)
        _require_not_cancelled(event)
        actor = _require_editor(event, actor_user_id)
        repo.check_version(event, expected_version)

        patch = build_patch(event)
        violations: list[dict[str, str]] = []
        proposed = _parse_fields(patch, violations)
        if violations:
            raise ValidationError(violations)

        current = _current_doc(event)
        if proposed.get("scheduling_method", current["scheduling_method"]) == SchedulingMethod.fixed:
            # fixed events carry none of these; they are cleared on write
            for key in FLEXIBLE_ONLY_FIELDS:
                proposed.pop(key, None)
        changed = _changed_fields(current, proposed)
        if not changed:
            logger.info("Update event: no changes detected for event %s", event_id)
            return event

        doc = {**current, **{key: proposed[key] for key in changed}}
        from_status = current["status"]

        if "status" in changed and doc["status"] == EventStatus.cancelled:
            others = sorted(changed - {"status"})
            if others:
                raise ValidationError([
                    _violation(key, "No other field may change in the request that cancels the event")
                    for key in others
                ])
        _check_status_transition(from_status, doc["status"])

        if "visibility" in changed:
            _check_visibility_transition(current["visibility"], doc["visibility"])

        if "members" in changed:
            _check_member_patch(event, actor, doc["members"], users)

        if doc["status"] != EventStatus.cancelled:
            negotiated = sorted(changed & NEGOTIATION_FIELDS)
            if from_status in (EventStatus.scheduled, EventStatus.confirmed) and negotiated:
                requested = proposed.get("status")
                if requested in (EventStatus.scheduled, EventStatus.confirmed):
                    raise ValidationError.single(
                        "status",
                        f"Changing {', '.join(negotiated)} re-opens scheduling; "
                        f"the event cannot be {requested.value} in the same request",
                    )
                # re-open negotiation before re-validating the patch
                doc["status"] = EventStatus.scheduling
                doc["scheduled_time"] = None
                logger.info("Event %s re-opened for scheduling (was %s)", event_id, from_status.value)
            elif doc["status"] == EventStatus.scheduling and proposed.get("scheduled_time") is None:
                doc["scheduled_time"] = None

            if doc["scheduling_method"] == SchedulingMethod.fixed:
                _clear_flexible_fields(doc)

            window_set = "time_window" in changed or (
                "scheduling_method" in changed and doc["scheduling_method"] == SchedulingMethod.flexible
            )
            violations = schedule_violations(
                _schedule_draft(doc),
                now_ms=clock(),
                check_window_start=window_set,
                enforce_blackout_exclusion=settings.ENFORCE_BLACKOUT_EXCLUSION,
            )
            if violations:
                logger.warning("Update event %s rejected: %s", event_id, violations)
                raise ValidationError(violations)

        before = event_snapshot(event)
        _apply_doc(event, doc)
        if "members" in changed:
            _sync_members(event, doc["members"])
        repo.save(event)

        action = ActionType.cancel if doc["status"] == EventStatus.cancelled else ActionType.update
        repo.record(event.event_id, actor_user_id, action, before, event_snapshot(event))
        if doc["status"] != from_status:
            logger.info("Event %s moved %s -> %s", event_id, from_status.value, doc["status"].value)
        return event

    event = repo.run_in_transaction(_update)
    db.refresh(event)
    return event


def update_event(
    db: Session,
    actor_user_id: Optional[str],
    event_id: str,
    patch: dict[str, Any],
    *,
    expected_version: Optional[int] = None,
    clock: Clock = current_millis,
    users: Optional[UserDirectory] = None,
) -> Event:
    """Apply a partial update. Either the whole validated patch commits or nothing does."""
    actor_user_id = _require_actor(actor_user_id, "Update event")
    event = _update_in_transaction(
        db, actor_user_id, event_id, lambda _event: patch,
        expected_version=expected_version, clock=clock, users=users or SqlUserDirectory(db),
    )
    logger.info("Updated event %s to version %d", event_id, event.version)
    return event


def update_member_role(
    db: Session,
    actor_user_id: Optional[str],
    event_id: str,
    user_id: str,
    role: str,
    *,
    clock: Clock = current_millis,
) -> Event:
    """Change one member's role; the same governor rules as a members patch apply."""
    actor_user_id = _require_actor(actor_user_id, "Update member role")

    def _patch(event: Event) -> dict[str, Any]:
        if event.find_member(user_id) is None:
            raise NotFound("Member not found in event")
        return {"members": [
            {"user_id": m.user_id, "role": role if m.user_id == user_id else m.role.value}
            for m in event.members
        ]}

    event = _update_in_transaction(
        db, actor_user_id, event_id, _patch,
        expected_version=None, clock=clock, users=SqlUserDirectory(db),
    )
    logger.info("Member %s of event %s now has role %s", user_id, event_id, role)
    return event


def _blackout_patch(event: Event, delta: TimeRange, combine) -> dict[str, Any]:
    if event.scheduling_method == SchedulingMethod.fixed:
        raise ValidationError.single("blackout_periods", "Blackout periods only apply to flexible events")
    violations = range_violations("blackout_periods", [delta])
    if violations:
        raise ValidationError(violations)
    updated = combine(ranges_from_dicts(event.blackout_periods), delta)
    return {"blackout_periods": ranges_to_dicts(updated)}


def add_event_blackout_period(
    db: Session,
    actor_user_id: Optional[str],
    event_id: str,
    period: dict[str, int],
    *,
    expected_version: Optional[int] = None,
    clock: Clock = current_millis,
) -> Event:
    """Add a blackout period, merging it with any it overlaps or touches."""
    actor_user_id = _require_actor(actor_user_id, "Add blackout period")
    delta = TimeRange.from_dict(period)
    return _update_in_transaction(
        db, actor_user_id, event_id, lambda event: _blackout_patch(event, delta, add_and_merge),
        expected_version=expected_version, clock=clock, users=SqlUserDirectory(db),
    )


def remove_event_blackout_period(
    db: Session,
    actor_user_id: Optional[str],
    event_id: str,
    period: dict[str, int],
    *,
    expected_version: Optional[int] = None,
    clock: Clock = current_millis,
) -> Event:
    """Remove a range from the blackout periods, splitting periods as needed."""
    actor_user_id = _require_actor(actor_user_id, "Remove blackout period")
    delta = TimeRange.from_dict(period)
    return _update_in_transaction(
        db, actor_user_id, event_id, lambda event: _blackout_patch(event, delta, subtract),
        expected_version=expected_version, clock=clock, users=SqlUserDirectory(db),
    )


def _member_settings(event: Event, member: EventMember) -> dict[str, Any]:
    return {
        "event_id": event.event_id,
        "user_id": member.user_id,
        "availability_status": member.availability_status.value,
        "custom_padding_after": member.custom_padding_after,
    }


def get_own_member_settings(db: Session, actor_user_id: Optional[str], event_id: str) -> dict[str, Any]:
    actor_user_id = _require_actor(actor_user_id, "Get member settings")
    event = _load(EventRepository(db), event_id)
    member = event.find_member(actor_user_id)
    if member is None:
        raise Forbidden("Not a member of this event")
    return _member_settings(event, member)


def update_own_member_settings(
    db: Session,
    actor_user_id: Optional[str],
    event_id: str,
    changes: dict[str, Any],
) -> dict[str, Any]:
    """Self-service: a member updates its own availability and padding."""
    actor_user_id = _require_actor(actor_user_id, "Update member settings")
    repo = EventRepository(db)

    def _update() -> dict[str, Any]:
        event = _load(repo, event_id)
        member = event.find_member(actor_user_id)
        if member is None:
            logger.warning("User %s is not a member of event %s", actor_user_id, event_id)
            raise Forbidden("Not a member of this event")
        _require_not_cancelled(event)

        violations = [
            _violation(key, f"Field '{key}' cannot be set through member settings")
            for key in sorted(set(changes) - role_governor.SELF_SERVICE_FIELDS)
        ]
        updates: dict[str, Any] = {}
        if "availability_status" in changes:
            status = _enum_parser(AvailabilityStatus)(changes["availability_status"], "availability_status", violations)
            if status is not None:
                updates["availability_status"] = status
        if "custom_padding_after" in changes:
            padding = changes["custom_padding_after"]
            if padding is not None and (not isinstance(padding, int) or isinstance(padding, bool) or padding < 0):
                violations.append(_violation("custom_padding_after", "Custom padding must be non-negative"))
            else:
                updates["custom_padding_after"] = padding
        if violations:
            raise ValidationError(violations)

        updates = {k: v for k, v in updates.items() if getattr(member, k) != v}
        if not updates:
            logger.info("Member settings: no changes for user %s in event %s", actor_user_id, event_id)
            return _member_settings(event, member)

        before = event_snapshot(event)
        for key, value in updates.items():
            setattr(member, key, value)
        repo.save(event)
        repo.record(event.event_id, actor_user_id, ActionType.member_settings, before, event_snapshot(event))
        return _member_settings(event, member)

    result = repo.run_in_transaction(_update)
    logger.info("Updated member settings for user %s in event %s", actor_user_id, event_id)
    return result


def regenerate_event_code(db: Session, actor_user_id: Optional[str], event_id: str) -> Event:
    """Issue a fresh share code; the old one stops resolving."""
    actor_user_id = _require_actor(actor_user_id, "Regenerate event code")
    repo = EventRepository(db)

    def _regenerate() -> Event:
        event = _load(repo, event_id)
        _require_editor(event, actor_user_id)
        _require_not_cancelled(event)
        event.event_code = generate_code(
            repo.code_exists,
            length=settings.EVENT_CODE_LENGTH,
            max_attempts=settings.EVENT_CODE_MAX_ATTEMPTS,
        )
        repo.save(event)
        repo.record(event.event_id, actor_user_id, ActionType.code_reset, None, None)
        return event

    event = repo.run_in_transaction(_regenerate)
    db.refresh(event)
    logger.info("Regenerated share code for event %s", event_id)
    return event


def delete_event(db: Session, actor_user_id: Optional[str], event_id: str) -> None:
    """Hard-delete an event. Original creator only, and only before confirmation."""
    actor_user_id = _require_actor(actor_user_id, "Delete event")
    repo = EventRepository(db)

    def _delete() -> None:
        event = _load(repo, event_id)
        if not role_governor.can_delete(event, actor_user_id):
            logger.warning("User %s not authorized to delete event %s", actor_user_id, event_id)
            raise Forbidden("Only the original creator can delete this event")
        if event.status not in DELETABLE_STATUSES:
            raise ValidationError.single("status", f"Cannot delete {event.status.value} events")
        repo.record(event.event_id, actor_user_id, ActionType.delete, event_snapshot(event), None)
        repo.delete(event)

    repo.run_in_transaction(_delete)
    logger.info("Deleted event %s", event_id)


def remove_user_from_events(db: Session, user_id: str) -> dict[str, int]:
    """Compensating operation for a deleted user. Safe to call repeatedly.

    Drops the user's memberships. Events whose original creator is the user
    cannot keep their first member and are deleted.
    """
    repo = EventRepository(db)

    def _remove() -> dict[str, int]:
        updated = deleted = 0
        for event in repo.find_by_member(user_id):
            before = event_snapshot(event)
            if event.original_creator_id == user_id:
                repo.record(event.event_id, None, ActionType.delete, before, None)
                repo.delete(event)
                deleted += 1
                continue
            remaining = [(m.user_id, m.role) for m in event.members if m.user_id != user_id]
            _sync_members(event, remaining)
            repo.save(event)
            repo.record(event.event_id, None, ActionType.member_removed, before, event_snapshot(event))
            updated += 1
        return {"events_updated": updated, "events_deleted": deleted}

    summary = repo.run_in_transaction(_remove)
    logger.info("Removed user %s from events: %s", user_id, summary)
    return summary


def get_event_history(db: Session, actor_user_id: Optional[str], event_id: str) -> list[EventMutation]:
    actor_user_id = _require_actor(actor_user_id, "Get event history")
    repo = EventRepository(db)
    event = _load(repo, event_id)
    _require_editor(event, actor_user_id)
    return repo.history(event_id)
