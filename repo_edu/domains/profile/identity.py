# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Git identity mode resolution.

A profile references a git connection by name. The connection itself
lives in the app-level settings, which decide how members are identified
on the platform. Only GitLab connections can use email identities; every
other platform (and a missing connection) resolves to usernames.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ValidationError

from repo_edu.core.config.yaml_loader import YAMLLoadError, load_section
from repo_edu.domains.roster.models import GitIdentityMode

logger = logging.getLogger(__name__)


class GitServerType(str, Enum):
    """Supported git platforms."""

    GITHUB = "github"
    GITLAB = "gitlab"
    GITEA = "gitea"


class GitConnection(BaseModel):
    """A named git platform connection from the app settings."""

    server_type: GitServerType
    base_url: str | None = None
    identity_mode: GitIdentityMode | None = None


class IdentityModeResolver(ABC):
    """Read-only lookup from git connection name to identity mode."""

    @abstractmethod
    def resolve_identity_mode(self, connection_name: str | None) -> GitIdentityMode:
        """Return the identity mode for a connection name."""


class GitConnectionRegistry(IdentityModeResolver):
    """Identity mode resolver backed by named git connections."""

    def __init__(self, connections: dict[str, GitConnection] | None = None) -> None:
        self._connections = dict(connections or {})

    @classmethod
    def from_yaml(cls, path: Path, *, missing_ok: bool = False) -> "GitConnectionRegistry":
        """Load connections from the ``git_connections`` mapping of a file.

        With ``missing_ok`` an absent file gives an empty registry, as on a
        fresh installation.

        Raises:
            YAMLLoadError: If the file is unreadable or a connection entry
                is malformed.
        """
        raw = load_section(path, "git_connections", missing_ok=missing_ok)

        connections: dict[str, GitConnection] = {}
        for name, entry in raw.items():
            try:
                connections[str(name)] = GitConnection.model_validate(entry)
            except ValidationError as e:
                raise YAMLLoadError(path, f"Invalid git connection '{name}': {e}") from e

        logger.info("Loaded %d git connections from %s", len(connections), path)
        return cls(connections)

    @property
    def connection_names(self) -> list[str]:
        return list(self._connections)

    def get(self, name: str) -> GitConnection | None:
        return self._connections.get(name)

    def register(self, name: str, connection: GitConnection) -> None:
        self._connections[name] = connection

    def resolve_identity_mode(self, connection_name: str | None) -> GitIdentityMode:
        if not connection_name:
            return GitIdentityMode.USERNAME
        connection = self._connections.get(connection_name)
        if connection is None:
            return GitIdentityMode.USERNAME
        if connection.server_type == GitServerType.GITLAB:
            return connection.identity_mode or GitIdentityMode.USERNAME
        return GitIdentityMode.USERNAME
