# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Command gateway port.

The document store never persists anything or talks to the backend
directly. Every load, save, validation and system group set computation
goes through a CommandGateway.

Gateway implementations must be async. Expected failures are returned
as GatewayResult.failure(...); transport problems may be raised as
GatewayError. The document store handles both.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, TypeVar

from repo_edu.domains.profile.models import LoadedProfile, ProfileSettings
from repo_edu.domains.roster.models import GitIdentityMode, Roster, SystemGroupSetPatch
from repo_edu.domains.roster.validation import ValidationResult

T = TypeVar("T")


class GatewayError(Exception):
    """Raised when a gateway call cannot be completed."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


@dataclass(frozen=True)
class GatewayResult(Generic[T]):
    """Outcome of a gateway call.

    Attributes:
        ok: Whether the call succeeded.
        data: Payload on success.
        error: Error message on failure.
    """

    ok: bool
    data: T | None = None
    error: str | None = None

    @classmethod
    def success(cls, data: T) -> "GatewayResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "GatewayResult[T]":
        return cls(ok=False, error=error)


class CommandGateway(ABC):
    """Async operations the document store depends on."""

    @abstractmethod
    async def load_profile(self, profile_name: str) -> GatewayResult[LoadedProfile]:
        """Load a profile's settings and load warnings."""
        ...

    @abstractmethod
    async def get_roster(self, profile_name: str) -> GatewayResult[Roster | None]:
        """Load a profile's roster (None when it has none yet)."""
        ...

    @abstractmethod
    async def save_profile_and_roster(
        self,
        profile_name: str,
        settings: ProfileSettings,
        roster: Roster | None,
    ) -> GatewayResult[None]:
        """Persist settings and roster together."""
        ...

    @abstractmethod
    async def validate_roster(self, roster: Roster) -> GatewayResult[ValidationResult]:
        """Run roster-level validation."""
        ...

    @abstractmethod
    async def validate_assignment(
        self,
        identity_mode: GitIdentityMode,
        roster: Roster,
        assignment_id: str,
    ) -> GatewayResult[ValidationResult]:
        """Run validation for one assignment."""
        ...

    @abstractmethod
    async def ensure_system_group_sets(
        self, roster: Roster
    ) -> GatewayResult[SystemGroupSetPatch]:
        """Compute the system group set patch for a roster."""
        ...

    @abstractmethod
    async def get_default_settings(self) -> ProfileSettings:
        """Default settings for a new or unreadable profile.

        Raises:
            GatewayError: If defaults cannot be produced.
        """
        ...
