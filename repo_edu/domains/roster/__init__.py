# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Roster domain.

Members, groups, group sets and assignments, plus the pure rules that
operate on them: naming, group selection, validation, system group set
computation and referential integrity.
"""

from repo_edu.domains.roster.models import (
    AllGroupsSelection,
    Assignment,
    AssignmentType,
    CanvasConnection,
    EnrollmentType,
    GitIdentityMode,
    GitUsernameStatus,
    Group,
    GroupOrigin,
    GroupSet,
    ImportConnection,
    MemberStatus,
    MoodleConnection,
    PatternSelection,
    Roster,
    RosterConnection,
    RosterMember,
    SystemConnection,
    SystemGroupSetPatch,
    SystemType,
)
from repo_edu.domains.roster.system import compute_system_group_sets
from repo_edu.domains.roster.validation import (
    ValidationIssue,
    ValidationKind,
    ValidationResult,
    validate_assignment,
    validate_roster,
)

__all__ = [
    # Models
    "AllGroupsSelection",
    "Assignment",
    "AssignmentType",
    "CanvasConnection",
    "EnrollmentType",
    "GitIdentityMode",
    "GitUsernameStatus",
    "Group",
    "GroupOrigin",
    "GroupSet",
    "ImportConnection",
    "MemberStatus",
    "MoodleConnection",
    "PatternSelection",
    "Roster",
    "RosterConnection",
    "RosterMember",
    "SystemConnection",
    "SystemGroupSetPatch",
    "SystemType",
    # Rules
    "compute_system_group_sets",
    "ValidationIssue",
    "ValidationKind",
    "ValidationResult",
    "validate_assignment",
    "validate_roster",
]
