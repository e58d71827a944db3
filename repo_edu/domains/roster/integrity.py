# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Referential integrity rules for rosters.

These functions mutate a roster in place and are meant to run on a draft
inside a mutation recipe, right after the primary change, so that the
recorded patches include the cascade.

Rules:
- a removed member disappears from every group
- a removed group disappears from every group set
- a group referenced by no group set is an orphan and is removed
- system group sets are never removed by user mutations
- at most one group set exists per system type
"""

import logging

from repo_edu.domains.roster.models import Roster, SystemGroupSetPatch, SystemType

logger = logging.getLogger(__name__)


def strip_member(roster: Roster, member_id: str) -> int:
    """Remove a member id from every group.

    Returns:
        Number of groups that referenced the member.
    """
    touched = 0
    for group in roster.groups:
        if member_id in group.member_ids:
            group.member_ids = [mid for mid in group.member_ids if mid != member_id]
            touched += 1
    return touched


def remove_group(roster: Roster, group_id: str) -> bool:
    """Remove a group and every group set reference to it."""
    before = len(roster.groups)
    roster.groups = [g for g in roster.groups if g.id != group_id]
    for group_set in roster.group_sets:
        if group_id in group_set.group_ids:
            group_set.group_ids = [gid for gid in group_set.group_ids if gid != group_id]
    return len(roster.groups) != before


def sweep_orphaned_groups(roster: Roster) -> list[str]:
    """Remove groups that no group set references.

    Returns:
        Ids of the removed groups.
    """
    referenced = {gid for gs in roster.group_sets for gid in gs.group_ids}
    orphaned = [g.id for g in roster.groups if g.id not in referenced]
    if orphaned:
        roster.groups = [g for g in roster.groups if g.id in referenced]
        logger.debug("Swept %d orphaned groups", len(orphaned))
    return orphaned


def remove_group_set(roster: Roster, group_set_id: str) -> bool:
    """Remove a non-system group set, then sweep orphaned groups.

    Assignments that reference the set are left in place; their dangling
    ``group_set_id`` is reported by assignment validation.

    Returns:
        True if the set was removed, False if missing or a system set.
    """
    group_set = roster.find_group_set(group_set_id)
    if group_set is None or group_set.is_system:
        return False
    roster.group_sets = [gs for gs in roster.group_sets if gs.id != group_set_id]
    sweep_orphaned_groups(roster)
    return True


def drop_dangling_references(roster: Roster) -> None:
    """Drop group ids and member ids that point at nothing.

    Assignment ``group_set_id`` references are intentionally kept.
    """
    group_ids = {g.id for g in roster.groups}
    for group_set in roster.group_sets:
        if any(gid not in group_ids for gid in group_set.group_ids):
            group_set.group_ids = [gid for gid in group_set.group_ids if gid in group_ids]

    member_ids = {m.id for m in roster.all_members()}
    for group in roster.groups:
        if any(mid not in member_ids for mid in group.member_ids):
            group.member_ids = [mid for mid in group.member_ids if mid in member_ids]


def dedupe_system_group_sets(
    roster: Roster,
    canonical_ids: dict[SystemType, str] | None = None,
) -> list[str]:
    """Keep one group set per system type.

    Args:
        roster: Roster to fix in place.
        canonical_ids: Preferred set id per type. Types without an entry
            keep their first set.

    Returns:
        Ids of the dropped group sets.
    """
    canonical_ids = canonical_ids or {}
    kept: dict[SystemType, str] = {}
    dropped: list[str] = []

    for group_set in roster.group_sets:
        system_type = group_set.system_type
        if system_type is None:
            continue
        preferred = canonical_ids.get(system_type)
        if preferred is not None:
            if group_set.id != preferred:
                dropped.append(group_set.id)
        elif system_type in kept:
            dropped.append(group_set.id)
        else:
            kept[system_type] = group_set.id

    if dropped:
        roster.group_sets = [gs for gs in roster.group_sets if gs.id not in set(dropped)]
        logger.info("Dropped %d duplicate system group sets", len(dropped))
    return dropped


def merge_system_patch(roster: Roster, patch: SystemGroupSetPatch) -> None:
    """Merge a system group set patch into a roster.

    Groups are upserted by id, then deletions are applied, then the system
    sets are upserted by id. Duplicate sets per system type are collapsed
    onto the ids the patch declared, and orphaned groups are swept.
    """
    positions = {g.id: i for i, g in enumerate(roster.groups)}
    for group in patch.groups_upserted:
        copy = group.model_copy(deep=True)
        index = positions.get(group.id)
        if index is None:
            positions[group.id] = len(roster.groups)
            roster.groups.append(copy)
        else:
            roster.groups[index] = copy

    if patch.deleted_group_ids:
        for group_id in patch.deleted_group_ids:
            remove_group(roster, group_id)

    canonical: dict[SystemType, str] = {}
    for group_set in patch.group_sets:
        copy = group_set.model_copy(deep=True)
        index = next((i for i, gs in enumerate(roster.group_sets) if gs.id == group_set.id), None)
        if index is None:
            roster.group_sets.append(copy)
        else:
            roster.group_sets[index] = copy
        if copy.system_type is not None:
            canonical[copy.system_type] = copy.id

    dedupe_system_group_sets(roster, canonical)
    sweep_orphaned_groups(roster)
