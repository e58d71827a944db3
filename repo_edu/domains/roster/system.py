# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""System group set computation.

Two canonical group sets are maintained by the tool itself:

- ``individual_students``: one singleton group per active student
- ``staff``: one singleton group per active staff member

The computation runs against a private copy of the roster and returns a
SystemGroupSetPatch that the document store merges back. It also reports
non-system groups that lost members which are no longer active.
"""

import logging

from repo_edu.domains.roster.models import (
    Group,
    GroupOrigin,
    GroupSet,
    Roster,
    RosterMember,
    SystemConnection,
    SystemGroupSetPatch,
    SystemType,
)
from repo_edu.domains.roster.naming import generate_unique_group_name
from repo_edu.utils.ids import IdGenerator, IdKind

logger = logging.getLogger(__name__)

SYSTEM_SET_NAMES: dict[SystemType, str] = {
    SystemType.INDIVIDUAL_STUDENTS: "Individual Students",
    SystemType.STAFF: "Staff",
}


def find_system_set(roster: Roster, system_type: SystemType) -> GroupSet | None:
    """First group set tagged with the given system type."""
    return next((gs for gs in roster.group_sets if gs.system_type == system_type), None)


def _ensure_singleton_set(
    roster: Roster,
    system_type: SystemType,
    members: list[RosterMember],
    id_generator: IdGenerator,
) -> tuple[GroupSet, list[Group], list[str]]:
    """Reconcile one system set so it holds a singleton group per member.

    Existing singleton groups are reused (and renamed if their expected
    name changed); groups for members no longer present are deleted.
    """
    upserted: list[Group] = []
    deleted: list[str] = []

    group_set = find_system_set(roster, system_type)
    if group_set is None:
        group_set = GroupSet(
            id=id_generator.new_id(IdKind.GROUP_SET),
            name=SYSTEM_SET_NAMES[system_type],
            connection=SystemConnection(system_type=system_type),
        )
        roster.group_sets.append(group_set)

    in_set = set(group_set.group_ids)
    existing_by_member: dict[str, Group] = {}
    for group in roster.groups:
        if group.origin == GroupOrigin.SYSTEM and len(group.member_ids) == 1 and group.id in in_set:
            existing_by_member.setdefault(group.member_ids[0], group)

    existing_names = {g.name for g in roster.groups if g.id in in_set}
    needed: list[str] = []

    for member in members:
        group = existing_by_member.get(member.id)
        if group is not None:
            existing_names.discard(group.name)
            expected = generate_unique_group_name([member], existing_names)
            if group.name != expected:
                group.name = expected
                upserted.append(group.model_copy(deep=True))
            existing_names.add(expected)
            needed.append(group.id)
        else:
            name = generate_unique_group_name([member], existing_names)
            existing_names.add(name)
            group = Group(
                id=id_generator.new_id(IdKind.GROUP),
                name=name,
                member_ids=[member.id],
                origin=GroupOrigin.SYSTEM,
            )
            roster.groups.append(group)
            upserted.append(group.model_copy(deep=True))
            needed.append(group.id)

    needed_ids = set(needed)
    for group_id in list(group_set.group_ids):
        if group_id in needed_ids:
            continue
        if any(g.id == group_id for g in roster.groups):
            roster.groups = [g for g in roster.groups if g.id != group_id]
            for gs in roster.group_sets:
                gs.group_ids = [gid for gid in gs.group_ids if gid != group_id]
            deleted.append(group_id)

    group_set.group_ids = needed
    return group_set.model_copy(deep=True), upserted, deleted


def _cleanup_stale_memberships(roster: Roster) -> list[Group]:
    """Strip missing or inactive members from non-system groups."""
    active_ids = {m.id for m in roster.all_members() if m.is_active}
    modified: list[Group] = []
    for group in roster.groups:
        if group.origin == GroupOrigin.SYSTEM:
            continue
        kept = [mid for mid in group.member_ids if mid in active_ids]
        if len(kept) != len(group.member_ids):
            group.member_ids = kept
            modified.append(group.model_copy(deep=True))
    return modified


def compute_system_group_sets(roster: Roster, id_generator: IdGenerator) -> SystemGroupSetPatch:
    """Compute the system group set patch for a roster.

    Args:
        roster: Current roster. It is not modified.
        id_generator: Source of ids for new sets and groups.

    Returns:
        SystemGroupSetPatch with both canonical system sets, the groups to
        upsert and the group ids to delete.
    """
    working = roster.model_copy(deep=True)
    patch = SystemGroupSetPatch()

    students = [m for m in working.students if m.is_active]
    staff = [m for m in working.staff if m.is_active]

    for system_type, members in (
        (SystemType.INDIVIDUAL_STUDENTS, students),
        (SystemType.STAFF, staff),
    ):
        group_set, upserted, deleted = _ensure_singleton_set(
            working, system_type, members, id_generator
        )
        patch.group_sets.append(group_set)
        patch.groups_upserted.extend(upserted)
        patch.deleted_group_ids.extend(deleted)

    patch.groups_upserted.extend(_cleanup_stale_memberships(working))

    logger.debug(
        "System group sets computed: %d upserted, %d deleted",
        len(patch.groups_upserted),
        len(patch.deleted_group_ids),
    )
    return patch
