# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data models for profile documents.

A ProfileDocument is the unit of load, save and undo/redo: the profile's
settings, its roster (absent until one is loaded or created), and the
git identity mode derived from the referenced git connection.
"""

from enum import Enum

from pydantic import BaseModel, Field

from repo_edu.domains.roster.models import GitIdentityMode, Roster


class DirectoryLayout(str, Enum):
    """Directory layout for cloned repositories."""

    FLAT = "flat"
    BY_TEAM = "by-team"
    BY_TASK = "by-task"


class CourseInfo(BaseModel):
    """LMS course reference."""

    id: str = ""
    name: str = ""


class CreateConfig(BaseModel):
    """Options for repository creation."""

    template_org: str = ""


class CloneConfig(BaseModel):
    """Options for repository cloning."""

    target_dir: str = ""
    directory_layout: DirectoryLayout = DirectoryLayout.FLAT


class DeleteConfig(BaseModel):
    """Options for repository deletion."""


class OperationConfigs(BaseModel):
    """Git operation settings.

    Attributes:
        target_org: Organization that receives student repositories.
        repo_name_template: Template with ``{assignment}`` and ``{group}``
            placeholders.
        create: Repository creation options.
        clone: Repository clone options.
        delete: Repository deletion options.
    """

    target_org: str = ""
    repo_name_template: str = "{assignment}-{group}"
    create: CreateConfig = Field(default_factory=CreateConfig)
    clone: CloneConfig = Field(default_factory=CloneConfig)
    delete: DeleteConfig = Field(default_factory=DeleteConfig)


class ExportSettings(BaseModel):
    """Roster export options."""

    output_folder: str = ""
    output_csv: bool = False
    output_xlsx: bool = False
    output_yaml: bool = True
    csv_file: str = "student-info.csv"
    xlsx_file: str = "student-info.xlsx"
    yaml_file: str = "students.yaml"
    member_option: str = "(email, gitid)"
    include_group: bool = True
    include_member: bool = True
    include_initials: bool = False
    full_groups: bool = True


class ProfileSettings(BaseModel):
    """Per-profile settings.

    Attributes:
        course: Linked LMS course.
        course_verified_at: When the course link was last verified.
        git_connection: Name of a git connection in the app settings.
        operations: Git operation settings.
        exports: Export settings.
    """

    course: CourseInfo = Field(default_factory=CourseInfo)
    course_verified_at: str | None = None
    git_connection: str | None = None
    operations: OperationConfigs = Field(default_factory=OperationConfigs)
    exports: ExportSettings = Field(default_factory=ExportSettings)


class ProfileDocument(BaseModel):
    """Settings, roster and derived identity mode of one profile."""

    settings: ProfileSettings = Field(default_factory=ProfileSettings)
    roster: Roster | None = None
    resolved_identity_mode: GitIdentityMode = GitIdentityMode.USERNAME


class LoadedProfile(BaseModel):
    """Gateway payload for a loaded profile's settings."""

    settings: ProfileSettings
    warnings: list[str] = Field(default_factory=list)
