# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data models for the roster domain.

This module defines Pydantic models and enums for:
- Roster members (students and staff)
- Groups and their origin
- Group sets and their provenance connection
- Assignments and their group selection

Provenance variants are discriminated unions on ``kind``. Editability
decisions match exhaustively over them, so adding a new variant forces
every decision point to be revisited.
"""

from enum import Enum
from typing import Annotated, Literal, assert_never

from pydantic import BaseModel, Field


class MemberStatus(str, Enum):
    """Lifecycle status of a roster member."""

    ACTIVE = "active"
    DROPPED = "dropped"
    INCOMPLETE = "incomplete"


class EnrollmentType(str, Enum):
    """Course enrollment role of a roster member."""

    STUDENT = "student"
    TEACHER = "teacher"
    TA = "ta"
    DESIGNER = "designer"
    OBSERVER = "observer"
    OTHER = "other"


class GitUsernameStatus(str, Enum):
    """Verification state of a member's git username."""

    UNKNOWN = "unknown"
    VALID = "valid"
    INVALID = "invalid"


class GroupOrigin(str, Enum):
    """Where a group came from.

    Only LOCAL groups can be edited directly. LMS groups are owned by the
    LMS sync path and SYSTEM groups by the system group set synchronizer.
    """

    LOCAL = "local"
    LMS = "lms"
    SYSTEM = "system"


class SystemType(str, Enum):
    """Kinds of tool-managed system group sets."""

    INDIVIDUAL_STUDENTS = "individual_students"
    STAFF = "staff"


class AssignmentType(str, Enum):
    """Assignment type tag."""

    CLASS_WIDE = "class_wide"
    SELECTIVE = "selective"


class GitIdentityMode(str, Enum):
    """How members are identified on the git platform."""

    USERNAME = "username"
    EMAIL = "email"


class RosterMember(BaseModel):
    """A student or staff member of a course roster.

    Attributes:
        id: Stable member id.
        name: Display name.
        email: Email address (may be empty for staff).
        student_number: Institution student number.
        git_username: Username on the git platform.
        git_username_status: Verification state of git_username.
        status: Lifecycle status.
        lms_user_id: User id in the LMS, when imported from one.
        enrollment_type: Course role; decides students vs staff placement.
        enrollment_display: LMS label for the role.
        department: Optional department.
        institution: Optional institution.
        source: Provenance tag, e.g. "lms" or "local".
    """

    id: str
    name: str
    email: str = ""
    student_number: str | None = None
    git_username: str | None = None
    git_username_status: GitUsernameStatus = GitUsernameStatus.UNKNOWN
    status: MemberStatus = MemberStatus.ACTIVE
    lms_user_id: str | None = None
    enrollment_type: EnrollmentType = EnrollmentType.STUDENT
    enrollment_display: str | None = None
    department: str | None = None
    institution: str | None = None
    source: str = "local"

    @property
    def is_student(self) -> bool:
        return self.enrollment_type == EnrollmentType.STUDENT

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE


class Group(BaseModel):
    """A named set of member references.

    Attributes:
        id: Stable group id.
        name: Group name (also feeds repository naming).
        member_ids: Ids of RosterMember entries.
        origin: Provenance; decides editability.
        lms_group_id: Group id in the LMS for LMS-origin groups.
    """

    id: str
    name: str
    member_ids: list[str] = Field(default_factory=list)
    origin: GroupOrigin = GroupOrigin.LOCAL
    lms_group_id: str | None = None

    @property
    def is_editable(self) -> bool:
        return self.origin == GroupOrigin.LOCAL


class SystemConnection(BaseModel):
    """Group set maintained by the system group set synchronizer."""

    kind: Literal["system"] = "system"
    system_type: SystemType


class CanvasConnection(BaseModel):
    """Group set linked to a Canvas group category."""

    kind: Literal["canvas"] = "canvas"
    course_id: str
    group_set_id: str
    last_updated: str | None = None


class MoodleConnection(BaseModel):
    """Group set linked to a Moodle grouping."""

    kind: Literal["moodle"] = "moodle"
    course_id: str
    grouping_id: str
    last_updated: str | None = None


class ImportConnection(BaseModel):
    """Group set imported from a file."""

    kind: Literal["import"] = "import"
    source_filename: str
    last_updated: str | None = None


GroupSetConnection = Annotated[
    SystemConnection | CanvasConnection | MoodleConnection | ImportConnection,
    Field(discriminator="kind"),
]


class GroupSet(BaseModel):
    """A named, ordered collection of group references.

    Attributes:
        id: Stable group set id.
        name: Display name.
        group_ids: Ordered ids of Group entries.
        connection: Provenance; None means a local set.
    """

    id: str
    name: str
    group_ids: list[str] = Field(default_factory=list)
    connection: GroupSetConnection | None = None

    @property
    def connection_kind(self) -> str:
        """Provenance kind, "local" when there is no connection."""
        connection = self.connection
        match connection:
            case None:
                return "local"
            case SystemConnection() | CanvasConnection() | MoodleConnection() | ImportConnection():
                return connection.kind
            case _:
                assert_never(connection)

    @property
    def system_type(self) -> SystemType | None:
        if isinstance(self.connection, SystemConnection):
            return self.connection.system_type
        return None

    @property
    def is_system(self) -> bool:
        return self.system_type is not None

    @property
    def is_lms_linked(self) -> bool:
        return isinstance(self.connection, (CanvasConnection, MoodleConnection))

    @property
    def is_mutable(self) -> bool:
        """Whether users may rename or delete this set."""
        connection = self.connection
        match connection:
            case None | ImportConnection() | CanvasConnection() | MoodleConnection():
                return True
            case SystemConnection():
                return False
            case _:
                assert_never(connection)

    @property
    def accepts_local_groups(self) -> bool:
        """Whether users may create groups inside this set."""
        connection = self.connection
        match connection:
            case None | ImportConnection():
                return True
            case SystemConnection() | CanvasConnection() | MoodleConnection():
                return False
            case _:
                assert_never(connection)


class AllGroupsSelection(BaseModel):
    """Every group of the set, minus explicit exclusions."""

    kind: Literal["all"] = "all"
    excluded_group_ids: list[str] = Field(default_factory=list)


class PatternSelection(BaseModel):
    """Groups whose name matches a glob pattern, minus exclusions."""

    kind: Literal["pattern"] = "pattern"
    pattern: str
    excluded_group_ids: list[str] = Field(default_factory=list)


GroupSelectionMode = Annotated[
    AllGroupsSelection | PatternSelection,
    Field(discriminator="kind"),
]


class Assignment(BaseModel):
    """An assignment bound to a group set.

    Attributes:
        id: Stable assignment id.
        name: Assignment name (also feeds repository naming).
        description: Optional free text.
        assignment_type: Assignment type tag.
        group_set_id: Referenced group set; may dangle after the set is
            deleted, which validation reports.
        group_selection: Which groups of the set apply.
    """

    id: str
    name: str
    description: str | None = None
    assignment_type: AssignmentType = AssignmentType.CLASS_WIDE
    group_set_id: str
    group_selection: GroupSelectionMode = Field(default_factory=AllGroupsSelection)


class RosterConnection(BaseModel):
    """Where the roster's member list came from."""

    kind: Literal["canvas", "moodle", "import"]
    course_id: str | None = None
    source_filename: str | None = None
    last_updated: str | None = None


class Roster(BaseModel):
    """One profile's educational data."""

    connection: RosterConnection | None = None
    students: list[RosterMember] = Field(default_factory=list)
    staff: list[RosterMember] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)
    group_sets: list[GroupSet] = Field(default_factory=list)
    assignments: list[Assignment] = Field(default_factory=list)

    def all_members(self) -> list[RosterMember]:
        return [*self.students, *self.staff]

    def find_member(self, member_id: str) -> RosterMember | None:
        for member in self.students:
            if member.id == member_id:
                return member
        for member in self.staff:
            if member.id == member_id:
                return member
        return None

    def find_group(self, group_id: str) -> Group | None:
        return next((g for g in self.groups if g.id == group_id), None)

    def find_group_set(self, group_set_id: str) -> GroupSet | None:
        return next((gs for gs in self.group_sets if gs.id == group_set_id), None)

    def find_assignment(self, assignment_id: str) -> Assignment | None:
        return next((a for a in self.assignments if a.id == assignment_id), None)


class SystemGroupSetPatch(BaseModel):
    """Result of a system group set computation, merged into the roster.

    Attributes:
        group_sets: The canonical system group sets, one per system type.
        groups_upserted: Groups to replace or append by id.
        deleted_group_ids: Groups to remove.
    """

    group_sets: list[GroupSet] = Field(default_factory=list)
    groups_upserted: list[Group] = Field(default_factory=list)
    deleted_group_ids: list[str] = Field(default_factory=list)
