# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mutation recipes for profile documents.

Each recipe edits a Draft in place. Drafts are private deep copies of the
current document, so a recipe may freely mutate what it finds; the
document store diffs the draft against the original afterwards to
derive the forward and inverse patches.

Guard conditions (missing ids, read-only origins, blank names) make a
recipe return without touching the draft, which yields an empty patch
set. Integrity cascades run inside the same recipe as the primary
change.
"""

from dataclasses import dataclass
from typing import Any

from repo_edu.core.config.yaml_loader import deep_merge
from repo_edu.domains.profile.identity import IdentityModeResolver
from repo_edu.domains.profile.models import (
    CourseInfo,
    ExportSettings,
    OperationConfigs,
    ProfileDocument,
    ProfileSettings,
)
from repo_edu.domains.roster import integrity
from repo_edu.domains.roster.models import (
    Assignment,
    Group,
    GroupSet,
    Roster,
    RosterMember,
)


@dataclass
class Draft:
    """Mutable working copy handed to recipes."""

    document: ProfileDocument | None

    @property
    def roster(self) -> Roster | None:
        return self.document.roster if self.document is not None else None

    def ensure_roster(self) -> Roster:
        """Create the document and roster when absent."""
        if self.document is None:
            self.document = ProfileDocument()
        if self.document.roster is None:
            self.document.roster = Roster()
        return self.document.roster


def _validated_update(model: Any, updates: dict[str, Any], keep: tuple[str, ...]) -> Any:
    """Return a validated copy of ``model`` with ``updates`` applied.

    Fields named in ``keep`` cannot be changed through ``updates``.

    Raises:
        pydantic.ValidationError: If an update value is invalid.
    """
    data = model.model_dump()
    data.update({k: v for k, v in updates.items() if k not in keep})
    return type(model).model_validate(data)


# =============================================================================
# Members
# =============================================================================


def add_member(draft: Draft, member: RosterMember) -> None:
    roster = draft.ensure_roster()
    if roster.find_member(member.id) is not None:
        return
    if member.is_student:
        roster.students.append(member.model_copy(deep=True))
    else:
        roster.staff.append(member.model_copy(deep=True))


def update_member(draft: Draft, member_id: str, updates: dict[str, Any]) -> None:
    """Apply field updates; move between students and staff if needed."""
    roster = draft.roster
    if roster is None:
        return

    for source, target in ((roster.students, roster.staff), (roster.staff, roster.students)):
        index = next((i for i, m in enumerate(source) if m.id == member_id), None)
        if index is None:
            continue
        updated = _validated_update(source[index], updates, keep=("id",))
        belongs_in_source = updated.is_student == (source is roster.students)
        if belongs_in_source:
            source[index] = updated
        else:
            del source[index]
            target.append(updated)
        return


def remove_member(draft: Draft, member_id: str) -> None:
    roster = draft.roster
    if roster is None or roster.find_member(member_id) is None:
        return
    roster.students = [m for m in roster.students if m.id != member_id]
    roster.staff = [m for m in roster.staff if m.id != member_id]
    integrity.strip_member(roster, member_id)


# =============================================================================
# Assignments
# =============================================================================


def add_assignment(draft: Draft, assignment: Assignment) -> None:
    roster = draft.ensure_roster()
    if roster.find_assignment(assignment.id) is not None:
        return
    roster.assignments.append(assignment.model_copy(deep=True))


def update_assignment(draft: Draft, assignment_id: str, updates: dict[str, Any]) -> None:
    roster = draft.roster
    if roster is None:
        return
    for index, assignment in enumerate(roster.assignments):
        if assignment.id == assignment_id:
            roster.assignments[index] = _validated_update(assignment, updates, keep=("id",))
            return


def delete_assignment(draft: Draft, assignment_id: str) -> None:
    roster = draft.roster
    if roster is None:
        return
    roster.assignments = [a for a in roster.assignments if a.id != assignment_id]


# =============================================================================
# Groups
# =============================================================================


def create_group(draft: Draft, group_set_id: str, group: Group) -> None:
    """Add a local group to a set that accepts local groups."""
    roster = draft.roster
    if roster is None or not group.name.strip():
        return
    group_set = roster.find_group_set(group_set_id)
    if group_set is None or not group_set.accepts_local_groups:
        return
    roster.groups.append(group.model_copy(deep=True))
    group_set.group_ids.append(group.id)


def update_group(draft: Draft, group_id: str, updates: dict[str, Any]) -> None:
    """Edit a local group's name or members; other origins are read-only."""
    roster = draft.roster
    if roster is None:
        return
    for index, group in enumerate(roster.groups):
        if group.id != group_id:
            continue
        if not group.is_editable:
            return
        updated = _validated_update(group, updates, keep=("id", "origin", "lms_group_id"))
        if not updated.name.strip():
            return
        roster.groups[index] = updated
        return


def delete_group(draft: Draft, group_id: str) -> None:
    roster = draft.roster
    if roster is None:
        return
    integrity.remove_group(roster, group_id)


def add_group_to_set(draft: Draft, group_set_id: str, group_id: str) -> None:
    roster = draft.roster
    if roster is None or roster.find_group(group_id) is None:
        return
    group_set = roster.find_group_set(group_set_id)
    if group_set is None or group_set.is_system:
        return
    if group_id not in group_set.group_ids:
        group_set.group_ids.append(group_id)


def remove_group_from_set(draft: Draft, group_set_id: str, group_id: str) -> None:
    roster = draft.roster
    if roster is None:
        return
    group_set = roster.find_group_set(group_set_id)
    if group_set is None or group_set.is_system:
        return
    if group_id in group_set.group_ids:
        group_set.group_ids = [gid for gid in group_set.group_ids if gid != group_id]
        integrity.sweep_orphaned_groups(roster)


def move_member_to_group(
    draft: Draft, member_id: str, source_group_id: str, target_group_id: str
) -> None:
    roster = draft.roster
    if roster is None or roster.find_member(member_id) is None:
        return
    source = roster.find_group(source_group_id)
    target = roster.find_group(target_group_id)
    if source is None or target is None or source is target:
        return
    if not source.is_editable or not target.is_editable:
        return
    source.member_ids = [mid for mid in source.member_ids if mid != member_id]
    if member_id not in target.member_ids:
        target.member_ids.append(member_id)


def copy_member_to_group(draft: Draft, member_id: str, target_group_id: str) -> None:
    roster = draft.roster
    if roster is None or roster.find_member(member_id) is None:
        return
    target = roster.find_group(target_group_id)
    if target is None or not target.is_editable:
        return
    if member_id not in target.member_ids:
        target.member_ids.append(member_id)


def _detach_from_source(roster: Roster, member_id: str, source_group_id: str | None) -> None:
    if source_group_id is None:
        return
    source = roster.find_group(source_group_id)
    if source is not None and source.is_editable:
        source.member_ids = [mid for mid in source.member_ids if mid != member_id]


def create_group_set_with_member(
    draft: Draft,
    member_id: str,
    group_set: GroupSet,
    group: Group,
    source_group_id: str | None,
    move: bool,
) -> None:
    """Create a local set holding one new group with the member."""
    roster = draft.roster
    if roster is None or roster.find_member(member_id) is None:
        return
    roster.groups.append(group.model_copy(deep=True))
    roster.group_sets.append(group_set.model_copy(deep=True))
    if move:
        _detach_from_source(roster, member_id, source_group_id)


def create_group_in_set_with_member(
    draft: Draft,
    member_id: str,
    group_set_id: str,
    group: Group,
    source_group_id: str | None,
    move: bool,
) -> None:
    """Create a new group with the member inside an existing set."""
    roster = draft.roster
    if roster is None or roster.find_member(member_id) is None:
        return
    group_set = roster.find_group_set(group_set_id)
    if group_set is None or not group_set.accepts_local_groups:
        return
    roster.groups.append(group.model_copy(deep=True))
    group_set.group_ids.append(group.id)
    if move:
        _detach_from_source(roster, member_id, source_group_id)


# =============================================================================
# Group sets
# =============================================================================


def create_local_group_set(draft: Draft, group_set: GroupSet) -> None:
    roster = draft.roster
    if roster is None or not group_set.name.strip():
        return
    known = {g.id for g in roster.groups}
    created = group_set.model_copy(deep=True)
    created.group_ids = [gid for gid in created.group_ids if gid in known]
    roster.group_sets.append(created)


def copy_group_set(draft: Draft, group_set_id: str, new_id: str) -> None:
    """Copy a set as a local set sharing the same groups."""
    roster = draft.roster
    if roster is None:
        return
    source = roster.find_group_set(group_set_id)
    if source is None:
        return
    roster.group_sets.append(
        GroupSet(id=new_id, name=f"{source.name} (copy)", group_ids=list(source.group_ids))
    )


def rename_group_set(draft: Draft, group_set_id: str, name: str) -> None:
    roster = draft.roster
    trimmed = name.strip()
    if roster is None or not trimmed:
        return
    group_set = roster.find_group_set(group_set_id)
    if group_set is None or not group_set.is_mutable:
        return
    group_set.name = trimmed


def delete_group_set(draft: Draft, group_set_id: str) -> None:
    roster = draft.roster
    if roster is None:
        return
    integrity.remove_group_set(roster, group_set_id)


# =============================================================================
# Whole roster
# =============================================================================


def set_roster(draft: Draft, roster: Roster) -> None:
    """Replace the roster, then restore referential integrity."""
    if draft.document is None:
        draft.document = ProfileDocument()
    replacement = roster.model_copy(deep=True)
    integrity.drop_dangling_references(replacement)
    integrity.sweep_orphaned_groups(replacement)
    draft.document.roster = replacement


def normalize_roster(draft: Draft) -> None:
    roster = draft.roster
    if roster is None:
        return
    integrity.drop_dangling_references(roster)
    integrity.dedupe_system_group_sets(roster)
    integrity.sweep_orphaned_groups(roster)


def cleanup_orphaned_groups(draft: Draft) -> None:
    roster = draft.roster
    if roster is None:
        return
    integrity.sweep_orphaned_groups(roster)


# =============================================================================
# Settings
# =============================================================================


def _settings(draft: Draft) -> ProfileSettings | None:
    return draft.document.settings if draft.document is not None else None


def set_course(draft: Draft, course: CourseInfo) -> None:
    settings = _settings(draft)
    if settings is not None:
        settings.course = course.model_copy(deep=True)


def set_course_verified_at(draft: Draft, timestamp: str | None) -> None:
    settings = _settings(draft)
    if settings is not None:
        settings.course_verified_at = timestamp


def set_git_connection(draft: Draft, name: str | None, resolver: IdentityModeResolver) -> None:
    """Point at a git connection and recompute the identity mode."""
    if draft.document is None:
        return
    draft.document.settings.git_connection = name
    draft.document.resolved_identity_mode = resolver.resolve_identity_mode(name)


def update_operations(draft: Draft, updates: dict[str, Any]) -> None:
    settings = _settings(draft)
    if settings is not None:
        merged = deep_merge(settings.operations.model_dump(), updates)
        settings.operations = OperationConfigs.model_validate(merged)


def set_operations(draft: Draft, operations: OperationConfigs) -> None:
    settings = _settings(draft)
    if settings is not None:
        settings.operations = operations.model_copy(deep=True)


def update_exports(draft: Draft, updates: dict[str, Any]) -> None:
    settings = _settings(draft)
    if settings is not None:
        merged = deep_merge(settings.exports.model_dump(), updates)
        settings.exports = ExportSettings.model_validate(merged)


def set_exports(draft: Draft, exports: ExportSettings) -> None:
    settings = _settings(draft)
    if settings is not None:
        settings.exports = exports.model_copy(deep=True)
