# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Profile domain.

The profile document engine: document models, patch-based history,
mutation recipes, debounced validation scheduling and the DocumentStore
that ties them together.
"""

from repo_edu.domains.profile.models import (
    CourseInfo,
    ExportSettings,
    LoadedProfile,
    OperationConfigs,
    ProfileDocument,
    ProfileSettings,
)
from repo_edu.domains.profile.history import HistoryEntry, HistoryManager
from repo_edu.domains.profile.identity import (
    GitConnection,
    GitConnectionRegistry,
    GitServerType,
    IdentityModeResolver,
)
from repo_edu.domains.profile.patches import PatchConflictError
from repo_edu.domains.profile.validation_scheduler import ValidationScheduler
from repo_edu.domains.profile.store import (
    DocumentStatus,
    DocumentStore,
    LoadResult,
    MemberTransferMode,
)

__all__ = [
    # Models
    "CourseInfo",
    "ExportSettings",
    "LoadedProfile",
    "OperationConfigs",
    "ProfileDocument",
    "ProfileSettings",
    # History
    "HistoryEntry",
    "HistoryManager",
    "PatchConflictError",
    # Identity
    "GitConnection",
    "GitConnectionRegistry",
    "GitServerType",
    "IdentityModeResolver",
    # Store
    "DocumentStatus",
    "DocumentStore",
    "LoadResult",
    "MemberTransferMode",
    "ValidationScheduler",
]
