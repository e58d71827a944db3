# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Roster and assignment validation rules.

Validation is advisory. Issues are split into blocking kinds (which stop
repository operations) and warnings. Roster validation checks the roster
as a whole; assignment validation checks the groups one assignment
resolves to.
"""

from collections import Counter, defaultdict
from enum import Enum
from typing import assert_never

from pydantic import BaseModel, Field

from repo_edu.domains.roster.models import (
    CanvasConnection,
    EnrollmentType,
    GitIdentityMode,
    GitUsernameStatus,
    GroupOrigin,
    GroupSet,
    ImportConnection,
    MoodleConnection,
    Roster,
    SystemConnection,
    SystemType,
)
from repo_edu.domains.roster.naming import DEFAULT_REPO_TEMPLATE, compute_repo_name
from repo_edu.domains.roster.selection import resolve_assignment_groups


class ValidationKind(str, Enum):
    """Kinds of validation issues."""

    SYSTEM_GROUP_SETS_MISSING = "system_group_sets_missing"
    DUPLICATE_STUDENT_ID = "duplicate_student_id"
    MISSING_EMAIL = "missing_email"
    INVALID_EMAIL = "invalid_email"
    DUPLICATE_EMAIL = "duplicate_email"
    DUPLICATE_ASSIGNMENT_NAME = "duplicate_assignment_name"
    DUPLICATE_GROUP_ID_IN_ASSIGNMENT = "duplicate_group_id_in_assignment"
    DUPLICATE_GROUP_NAME_IN_ASSIGNMENT = "duplicate_group_name_in_assignment"
    DUPLICATE_REPO_NAME_IN_ASSIGNMENT = "duplicate_repo_name_in_assignment"
    ORPHAN_GROUP_MEMBER = "orphan_group_member"
    EMPTY_GROUP = "empty_group"
    INVALID_ENROLLMENT_PARTITION = "invalid_enrollment_partition"
    INVALID_GROUP_ORIGIN = "invalid_group_origin"
    MISSING_GROUP_SET = "missing_group_set"
    STUDENT_IN_MULTIPLE_GROUPS_IN_ASSIGNMENT = "student_in_multiple_groups_in_assignment"
    MISSING_GIT_USERNAME = "missing_git_username"
    INVALID_GIT_USERNAME = "invalid_git_username"
    UNASSIGNED_STUDENT = "unassigned_student"

    @property
    def is_blocking(self) -> bool:
        return self in _BLOCKING_KINDS


_BLOCKING_KINDS = frozenset(
    {
        ValidationKind.DUPLICATE_STUDENT_ID,
        ValidationKind.DUPLICATE_EMAIL,
        ValidationKind.INVALID_EMAIL,
        ValidationKind.DUPLICATE_ASSIGNMENT_NAME,
        ValidationKind.DUPLICATE_GROUP_ID_IN_ASSIGNMENT,
        ValidationKind.DUPLICATE_GROUP_NAME_IN_ASSIGNMENT,
        ValidationKind.DUPLICATE_REPO_NAME_IN_ASSIGNMENT,
        ValidationKind.ORPHAN_GROUP_MEMBER,
        ValidationKind.EMPTY_GROUP,
        ValidationKind.SYSTEM_GROUP_SETS_MISSING,
        ValidationKind.INVALID_ENROLLMENT_PARTITION,
        ValidationKind.INVALID_GROUP_ORIGIN,
        ValidationKind.MISSING_GROUP_SET,
    }
)


class ValidationIssue(BaseModel):
    """One validation finding."""

    kind: ValidationKind
    affected_ids: list[str] = Field(default_factory=list)
    context: str | None = None


class ValidationResult(BaseModel):
    """All issues found by one validation run."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_blocking_issues(self) -> bool:
        return any(issue.kind.is_blocking for issue in self.issues)

    def blocking_issues(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.kind.is_blocking]

    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if not issue.kind.is_blocking]


def is_valid_email(email: str) -> bool:
    """Loose structural email check: one ``@`` and a dotted domain."""
    email = email.strip()
    parts = email.split("@")
    if len(parts) != 2:
        return False
    local, domain = parts
    if not local or not domain or " " in local:
        return False
    dot = domain.rfind(".")
    return 0 < dot < len(domain) - 1


def _normalize_name(name: str) -> str:
    return " ".join(name.split()).lower()


def _duplicates(values) -> list[str]:
    counts = Counter(values)
    return sorted(value for value, count in counts.items() if count > 1)


def system_sets_missing(roster: Roster) -> bool:
    present = {gs.system_type for gs in roster.group_sets if gs.is_system}
    return not {SystemType.INDIVIDUAL_STUDENTS, SystemType.STAFF} <= present


def _origin_consistent(group_set: GroupSet, origin: GroupOrigin, lms_group_id: str | None) -> bool:
    connection = group_set.connection
    match connection:
        case None:
            return True
        case SystemConnection():
            return origin == GroupOrigin.SYSTEM
        case CanvasConnection() | MoodleConnection():
            return origin == GroupOrigin.LMS
        case ImportConnection():
            return origin == GroupOrigin.LOCAL and lms_group_id is None
        case _:
            assert_never(connection)


def validate_roster(roster: Roster) -> ValidationResult:
    """Run roster-level checks.

    Args:
        roster: Roster to check.

    Returns:
        ValidationResult with one issue per failing rule (or per offending
        group/group set for reference checks).
    """
    issues: list[ValidationIssue] = []

    if system_sets_missing(roster):
        issues.append(
            ValidationIssue(
                kind=ValidationKind.SYSTEM_GROUP_SETS_MISSING,
                context="Call ensure_system_group_sets before validation",
            )
        )

    duplicate_ids = _duplicates(m.id for m in roster.all_members())
    if duplicate_ids:
        issues.append(
            ValidationIssue(kind=ValidationKind.DUPLICATE_STUDENT_ID, affected_ids=duplicate_ids)
        )

    missing_emails = [m.id for m in roster.students if not m.email.strip()]
    if missing_emails:
        issues.append(ValidationIssue(kind=ValidationKind.MISSING_EMAIL, affected_ids=missing_emails))

    invalid_emails = [
        m.id for m in roster.students if m.email.strip() and not is_valid_email(m.email)
    ]
    if invalid_emails:
        issues.append(ValidationIssue(kind=ValidationKind.INVALID_EMAIL, affected_ids=invalid_emails))

    duplicate_emails = _duplicates(
        m.email.strip().lower() for m in roster.students if m.email.strip()
    )
    if duplicate_emails:
        issues.append(
            ValidationIssue(kind=ValidationKind.DUPLICATE_EMAIL, affected_ids=duplicate_emails)
        )

    duplicate_assignments = _duplicates(_normalize_name(a.name) for a in roster.assignments)
    if duplicate_assignments:
        issues.append(
            ValidationIssue(
                kind=ValidationKind.DUPLICATE_ASSIGNMENT_NAME,
                affected_ids=duplicate_assignments,
            )
        )

    duplicate_group_ids = _duplicates(g.id for g in roster.groups)
    if duplicate_group_ids:
        issues.append(
            ValidationIssue(
                kind=ValidationKind.DUPLICATE_GROUP_ID_IN_ASSIGNMENT,
                affected_ids=duplicate_group_ids,
                context="Duplicate group IDs in roster",
            )
        )

    group_ids = {g.id for g in roster.groups}
    for group_set in roster.group_sets:
        dangling = [gid for gid in group_set.group_ids if gid not in group_ids]
        if dangling:
            issues.append(
                ValidationIssue(
                    kind=ValidationKind.ORPHAN_GROUP_MEMBER,
                    affected_ids=dangling,
                    context=f"Group set '{group_set.name}' references non-existent groups",
                )
            )

    misplaced_students = [m.id for m in roster.students if m.enrollment_type != EnrollmentType.STUDENT]
    if misplaced_students:
        issues.append(
            ValidationIssue(
                kind=ValidationKind.INVALID_ENROLLMENT_PARTITION,
                affected_ids=misplaced_students,
                context="Non-students in students array",
            )
        )

    misplaced_staff = [m.id for m in roster.staff if m.enrollment_type == EnrollmentType.STUDENT]
    if misplaced_staff:
        issues.append(
            ValidationIssue(
                kind=ValidationKind.INVALID_ENROLLMENT_PARTITION,
                affected_ids=misplaced_staff,
                context="Students in staff array",
            )
        )

    member_ids = {m.id for m in roster.all_members()}
    for group in roster.groups:
        unknown = [mid for mid in group.member_ids if mid not in member_ids]
        if unknown:
            issues.append(
                ValidationIssue(
                    kind=ValidationKind.ORPHAN_GROUP_MEMBER,
                    affected_ids=unknown,
                    context=f"Group '{group.name}' references non-existent members",
                )
            )

    groups_by_id = {g.id: g for g in roster.groups}
    for group_set in roster.group_sets:
        for gid in group_set.group_ids:
            group = groups_by_id.get(gid)
            if group is None:
                continue
            if not _origin_consistent(group_set, group.origin, group.lms_group_id):
                issues.append(
                    ValidationIssue(
                        kind=ValidationKind.INVALID_GROUP_ORIGIN,
                        affected_ids=[group.id],
                        context=(
                            f"Group '{group.name}' has origin '{group.origin.value}' but "
                            f"group set '{group_set.name}' expects different origin"
                        ),
                    )
                )

    return ValidationResult(issues=issues)


def validate_assignment(
    roster: Roster,
    assignment_id: str,
    identity_mode: GitIdentityMode = GitIdentityMode.USERNAME,
    template: str = DEFAULT_REPO_TEMPLATE,
) -> ValidationResult:
    """Run checks over the groups one assignment resolves to.

    Args:
        roster: Roster holding the assignment.
        assignment_id: Assignment to check. An unknown id yields no issues.
        identity_mode: Git usernames are only checked in username mode.
        template: Repository name template for duplicate repo detection.

    Returns:
        ValidationResult for the assignment.
    """
    issues: list[ValidationIssue] = []

    assignment = roster.find_assignment(assignment_id)
    if assignment is None:
        return ValidationResult(issues=issues)

    if roster.find_group_set(assignment.group_set_id) is None:
        issues.append(
            ValidationIssue(
                kind=ValidationKind.MISSING_GROUP_SET,
                affected_ids=[assignment.id],
                context=f"Group set '{assignment.group_set_id}' no longer exists",
            )
        )
        return ValidationResult(issues=issues)

    groups = resolve_assignment_groups(roster, assignment)
    members = {m.id: m for m in roster.all_members()}

    duplicate_names = _duplicates(_normalize_name(g.name) for g in groups)
    if duplicate_names:
        issues.append(
            ValidationIssue(
                kind=ValidationKind.DUPLICATE_GROUP_NAME_IN_ASSIGNMENT,
                affected_ids=duplicate_names,
            )
        )

    group_counts: Counter[str] = Counter()
    empty_groups: set[str] = set()
    missing_usernames: set[str] = set()
    invalid_usernames: set[str] = set()
    check_usernames = identity_mode == GitIdentityMode.USERNAME

    for group in groups:
        if not group.member_ids:
            empty_groups.add(group.id)
        for member_id in group.member_ids:
            member = members.get(member_id)
            if member is None or not member.is_active:
                continue
            group_counts[member_id] += 1
            if check_usernames:
                username = (member.git_username or "").strip()
                if not username:
                    missing_usernames.add(member_id)
                elif member.git_username_status == GitUsernameStatus.INVALID:
                    invalid_usernames.add(member_id)

    in_multiple = sorted(mid for mid, count in group_counts.items() if count > 1)
    if in_multiple:
        issues.append(
            ValidationIssue(
                kind=ValidationKind.STUDENT_IN_MULTIPLE_GROUPS_IN_ASSIGNMENT,
                affected_ids=in_multiple,
            )
        )

    if empty_groups:
        issues.append(
            ValidationIssue(kind=ValidationKind.EMPTY_GROUP, affected_ids=sorted(empty_groups))
        )

    if missing_usernames:
        issues.append(
            ValidationIssue(
                kind=ValidationKind.MISSING_GIT_USERNAME,
                affected_ids=sorted(missing_usernames),
            )
        )

    if invalid_usernames:
        issues.append(
            ValidationIssue(
                kind=ValidationKind.INVALID_GIT_USERNAME,
                affected_ids=sorted(invalid_usernames),
            )
        )

    unassigned = sorted(m.id for m in roster.students if m.is_active and m.id not in group_counts)
    if unassigned:
        issues.append(
            ValidationIssue(kind=ValidationKind.UNASSIGNED_STUDENT, affected_ids=unassigned)
        )

    repo_names: dict[str, list[str]] = defaultdict(list)
    for group in groups:
        repo_names[compute_repo_name(template, assignment, group)].append(group.id)
    for repo_name, group_ids in sorted(repo_names.items()):
        if len(group_ids) > 1:
            issues.append(
                ValidationIssue(
                    kind=ValidationKind.DUPLICATE_REPO_NAME_IN_ASSIGNMENT,
                    affected_ids=sorted(group_ids),
                    context=repo_name,
                )
            )

    return ValidationResult(issues=issues)
