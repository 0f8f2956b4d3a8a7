"""Membership role governor.

Decides who may add, remove, promote or demote members, who may edit which
event fields, and who may see or delete an event. Roles are ordered
``participant < admin < creator``; the member at index 0 (the original
creator) outranks every other creator.

Rules for member-list patches, evaluated per changed member:

- the original creator is never removed and never changes role
- any creator may add members, promote participants/admins to admin or
  creator, demote admins and remove participants/admins
- only the original creator may demote or remove another creator
- an admin may add or remove participants and demote admins to
  participant; it never promotes and never touches a creator
- a participant has no membership rights

A patch is all-or-nothing: one denied change rejects the whole patch.
"""
from dataclasses import dataclass
from typing import Iterable, Optional

from app.errors import Forbidden
from app.models.event import Event, Visibility
from app.models.member import MemberRole

ROLE_RANK = {
    MemberRole.participant: 0,
    MemberRole.admin: 1,
    MemberRole.creator: 2,
}

# Event fields creators and admins may patch. Membership goes through the
# member rules above; availability/padding only through the member's own
# settings.
EDITABLE_FIELDS = frozenset({
    "name",
    "description",
    "members",
    "status",
    "visibility",
    "scheduling_method",
    "duration",
    "time_window",
    "scheduled_time",
    "blackout_periods",
    "preferred_times",
    "daily_start_constraints",
})

SELF_SERVICE_FIELDS = frozenset({"availability_status", "custom_padding_after"})

EDITOR_ROLES = frozenset({MemberRole.creator, MemberRole.admin})


@dataclass(frozen=True)
class MemberChange:
    """One member's difference between the current and the proposed list."""

    user_id: str
    old_role: Optional[MemberRole]  # None: member is being added
    new_role: Optional[MemberRole]  # None: member is being removed

    @property
    def kind(self) -> str:
        if self.old_role is None:
            return "add"
        if self.new_role is None:
            return "remove"
        if ROLE_RANK[self.new_role] > ROLE_RANK[self.old_role]:
            return "promote"
        return "demote"

    def describe(self) -> str:
        old = self.old_role.value if self.old_role else "-"
        new = self.new_role.value if self.new_role else "-"
        return f"{self.kind} {self.user_id} ({old} -> {new})"


def diff_members(
    current: Iterable[tuple[str, MemberRole]],
    proposed: Iterable[tuple[str, MemberRole]],
) -> list[MemberChange]:
    """Diff two ``(user_id, role)`` lists by user id. Reordering is not a change."""
    current_roles = dict(current)
    proposed_roles = dict(proposed)
    changes = []
    for user_id, role in proposed_roles.items():
        old = current_roles.get(user_id)
        if old != role:
            changes.append(MemberChange(user_id, old, role))
    for user_id, role in current_roles.items():
        if user_id not in proposed_roles:
            changes.append(MemberChange(user_id, role, None))
    return changes


def member_list_violations(
    original_creator_id: Optional[str],
    proposed: list[tuple[str, MemberRole]],
) -> list[dict[str, str]]:
    """Structural invariants of a member list, independent of who asks."""
    violations = []
    if not proposed:
        return [{"field": "members", "message": "Event must have at least one member"}]

    ids = [user_id for user_id, _ in proposed]
    duplicates = sorted({u for u in ids if ids.count(u) > 1})
    if duplicates:
        violations.append({"field": "members", "message": f"Duplicate members: {', '.join(duplicates)}"})

    first_id, first_role = proposed[0]
    if original_creator_id is not None:
        if original_creator_id not in ids:
            violations.append({"field": "members", "message": "The original creator cannot be removed"})
        elif first_id != original_creator_id:
            violations.append({"field": "members", "message": "The original creator must remain the first member"})
    if first_role != MemberRole.creator:
        violations.append({"field": "members", "message": "The first member must keep the creator role"})

    if not any(role == MemberRole.creator for _, role in proposed):
        violations.append({"field": "members", "message": "At least one member must be a creator"})
    return violations


def _deny_reason(
    actor_role: MemberRole,
    actor_is_original: bool,
    change: MemberChange,
    original_creator_id: Optional[str],
) -> Optional[str]:
    if change.user_id == original_creator_id:
        return "the original creator cannot be removed or change role"

    if actor_role == MemberRole.participant:
        return "participants cannot change membership"

    touches_creator = MemberRole.creator in (change.old_role, change.new_role)

    if actor_role == MemberRole.admin:
        if change.kind == "promote":
            return "admins cannot promote members"
        if touches_creator:
            return "admins cannot change a creator's membership"
        if change.kind == "add" and change.new_role != MemberRole.participant:
            return "admins can only add participants"
        if change.kind == "remove" and change.old_role != MemberRole.participant:
            return "admins can only remove participants"
        return None

    # actor is a creator
    if change.old_role == MemberRole.creator and not actor_is_original:
        return "only the original creator can demote or remove a creator"
    return None


def authorize_member_changes(
    actor_id: str,
    actor_role: MemberRole,
    original_creator_id: Optional[str],
    changes: list[MemberChange],
) -> None:
    """Raise one Forbidden listing every denied change, or return silently."""
    actor_is_original = actor_id == original_creator_id
    denied = []
    for change in changes:
        reason = _deny_reason(actor_role, actor_is_original, change, original_creator_id)
        if reason:
            denied.append({"user_id": change.user_id, "change": change.describe(), "reason": reason})
    if denied:
        raise Forbidden(
            f"Not allowed to apply {len(denied)} of {len(changes)} member change(s)",
            denied=denied,
        )


def can_edit_event(role: Optional[MemberRole]) -> bool:
    return role in EDITOR_ROLES


def can_access(event: Event, actor_id: Optional[str]) -> bool:
    """Public: everyone. Draft: creators and admins. Private: any member."""
    if event.visibility == Visibility.public:
        return True
    member = event.find_member(actor_id)
    if member is None:
        return False
    if event.visibility == Visibility.draft:
        return member.role in EDITOR_ROLES
    return True


def can_delete(event: Event, actor_id: Optional[str]) -> bool:
    """Deletion is reserved for the original creator."""
    return actor_id is not None and actor_id == event.original_creator_id
