# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-only selectors over a DocumentStore.

Derived views are memoized against the identity of the roster object.
Mutations that leave the roster untouched keep its identity, so those
views are not recomputed after, e.g., a settings change.
"""

from collections.abc import Callable
from typing import Generic, TypeVar

from repo_edu.domains.profile.models import ProfileDocument, ProfileSettings
from repo_edu.domains.profile.store import DocumentStatus, DocumentStore
from repo_edu.domains.roster.models import (
    Assignment,
    Group,
    GroupSet,
    Roster,
    RosterMember,
    SystemType,
)
from repo_edu.domains.roster.selection import groups_in_set
from repo_edu.domains.roster.validation import ValidationResult

T = TypeVar("T")


class RosterMemo(Generic[T]):
    """Caches one computed value per roster object."""

    def __init__(self, compute: Callable[[Roster], T], empty: Callable[[], T]) -> None:
        self._compute = compute
        self._empty = empty
        self._roster: Roster | None = None
        self._value: T | None = None
        self.computations = 0

    def __call__(self, store: DocumentStore) -> T:
        roster = store.roster
        if roster is None:
            return self._empty()
        if roster is not self._roster:
            self._value = self._compute(roster)
            self._roster = roster
            self.computations += 1
        return self._value  # type: ignore[return-value]


# =============================================================================
# Document
# =============================================================================


def select_document(store: DocumentStore) -> ProfileDocument | None:
    return store.document


def select_settings(store: DocumentStore) -> ProfileSettings | None:
    document = store.document
    return document.settings if document is not None else None


def select_roster(store: DocumentStore) -> Roster | None:
    return store.roster


def select_students(store: DocumentStore) -> list[RosterMember]:
    roster = store.roster
    return roster.students if roster is not None else []


def select_staff(store: DocumentStore) -> list[RosterMember]:
    roster = store.roster
    return roster.staff if roster is not None else []


select_members = RosterMemo(lambda roster: roster.all_members(), list)


def select_roster_member_by_id(store: DocumentStore, member_id: str) -> RosterMember | None:
    roster = store.roster
    return roster.find_member(member_id) if roster is not None else None


def select_assignments(store: DocumentStore) -> list[Assignment]:
    roster = store.roster
    return roster.assignments if roster is not None else []


# =============================================================================
# Groups and group sets
# =============================================================================


def select_groups_for_group_set(group_set_id: str) -> RosterMemo[list[Group]]:
    """Build a memoized selector for the groups of one group set."""

    def compute(roster: Roster) -> list[Group]:
        group_set = roster.find_group_set(group_set_id)
        return groups_in_set(roster, group_set) if group_set is not None else []

    return RosterMemo(compute, list)


def select_assignments_for_group_set(group_set_id: str) -> RosterMemo[list[Assignment]]:
    """Build a memoized selector for assignments bound to a group set."""
    return RosterMemo(
        lambda roster: [a for a in roster.assignments if a.group_set_id == group_set_id],
        list,
    )


def select_is_group_editable(store: DocumentStore, group_id: str) -> bool:
    roster = store.roster
    group = roster.find_group(group_id) if roster is not None else None
    return group is not None and group.is_editable


def select_group_reference_count(store: DocumentStore, group_id: str) -> int:
    """Number of group sets that reference a group."""
    roster = store.roster
    if roster is None:
        return 0
    return sum(1 for gs in roster.group_sets if group_id in gs.group_ids)


def select_is_group_set_editable(store: DocumentStore, group_set_id: str) -> bool:
    """Whether users may add or create local groups in a set."""
    roster = store.roster
    group_set = roster.find_group_set(group_set_id) if roster is not None else None
    return group_set is not None and group_set.accepts_local_groups


def select_system_group_set(store: DocumentStore, system_type: SystemType) -> GroupSet | None:
    roster = store.roster
    if roster is None:
        return None
    return next((gs for gs in roster.group_sets if gs.system_type == system_type), None)


select_connected_group_sets = RosterMemo(
    lambda roster: [gs for gs in roster.group_sets if gs.connection is not None and not gs.is_system],
    list,
)

select_local_group_sets = RosterMemo(
    lambda roster: [gs for gs in roster.group_sets if gs.connection is None],
    list,
)


def _editable_groups_by_group_set(roster: Roster) -> dict[str, list[Group]]:
    return {
        gs.id: [g for g in groups_in_set(roster, gs) if g.is_editable]
        for gs in roster.group_sets
        if gs.accepts_local_groups
    }


select_editable_groups_by_group_set = RosterMemo(_editable_groups_by_group_set, dict)


# =============================================================================
# History
# =============================================================================


def select_can_undo(store: DocumentStore) -> bool:
    return store.history.can_undo


def select_can_redo(store: DocumentStore) -> bool:
    return store.history.can_redo


def select_next_undo_description(store: DocumentStore) -> str | None:
    return store.history.next_undo_description


def select_next_redo_description(store: DocumentStore) -> str | None:
    return store.history.next_redo_description


# =============================================================================
# Status and validation
# =============================================================================


def select_status(store: DocumentStore) -> DocumentStatus:
    return store.status


def select_error(store: DocumentStore) -> str | None:
    return store.error


def select_warnings(store: DocumentStore) -> list[str]:
    return store.warnings


def select_system_sets_ready(store: DocumentStore) -> bool:
    return store.system_sets_ready


def select_selected_assignment(store: DocumentStore) -> Assignment | None:
    roster = store.roster
    selected = store.selected_assignment_id
    if roster is None or selected is None:
        return None
    return roster.find_assignment(selected)


def select_roster_validation(store: DocumentStore) -> ValidationResult | None:
    return store.roster_validation


def select_assignment_validation(store: DocumentStore) -> ValidationResult | None:
    return store.assignment_validation


def select_assignment_validations(store: DocumentStore) -> dict[str, ValidationResult]:
    return store.assignment_validations
