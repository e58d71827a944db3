# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-process command gateway.

Keeps profiles in a dictionary and runs the roster rules in-process. It
lets the document store be driven headless, e.g. from scripts or tests.
Everything handed out or taken in is deep-copied, so callers never share
state with the gateway.
"""

import logging

from repo_edu.domains.profile.models import LoadedProfile, ProfileSettings
from repo_edu.domains.roster.models import GitIdentityMode, Roster, SystemGroupSetPatch
from repo_edu.domains.roster.system import compute_system_group_sets
from repo_edu.domains.roster.validation import (
    ValidationResult,
    validate_assignment,
    validate_roster,
)
from repo_edu.infrastructure.gateway.ports import CommandGateway, GatewayResult
from repo_edu.utils.ids import IdGenerator, UuidIdGenerator

logger = logging.getLogger(__name__)


class InMemoryCommandGateway(CommandGateway):
    """Dictionary-backed CommandGateway.

    Attributes:
        default_settings: Settings returned by get_default_settings().
    """

    def __init__(
        self,
        profiles: dict[str, tuple[ProfileSettings, Roster | None]] | None = None,
        id_generator: IdGenerator | None = None,
        default_settings: ProfileSettings | None = None,
    ) -> None:
        self._profiles: dict[str, tuple[ProfileSettings, Roster | None]] = {}
        for name, (settings, roster) in (profiles or {}).items():
            self.put_profile(name, settings, roster)
        self._ids = id_generator or UuidIdGenerator()
        self.default_settings = default_settings or ProfileSettings()

    @property
    def profile_names(self) -> list[str]:
        return sorted(self._profiles)

    def put_profile(
        self, profile_name: str, settings: ProfileSettings, roster: Roster | None = None
    ) -> None:
        self._profiles[profile_name] = (
            settings.model_copy(deep=True),
            roster.model_copy(deep=True) if roster is not None else None,
        )

    async def load_profile(self, profile_name: str) -> GatewayResult[LoadedProfile]:
        entry = self._profiles.get(profile_name)
        if entry is None:
            return GatewayResult.failure(f"Profile '{profile_name}' not found")
        return GatewayResult.success(LoadedProfile(settings=entry[0].model_copy(deep=True)))

    async def get_roster(self, profile_name: str) -> GatewayResult[Roster | None]:
        entry = self._profiles.get(profile_name)
        if entry is None:
            return GatewayResult.failure(f"Profile '{profile_name}' not found")
        roster = entry[1]
        return GatewayResult.success(roster.model_copy(deep=True) if roster is not None else None)

    async def save_profile_and_roster(
        self,
        profile_name: str,
        settings: ProfileSettings,
        roster: Roster | None,
    ) -> GatewayResult[None]:
        self.put_profile(profile_name, settings, roster)
        logger.debug("Saved profile %s", profile_name)
        return GatewayResult.success(None)

    async def validate_roster(self, roster: Roster) -> GatewayResult[ValidationResult]:
        return GatewayResult.success(validate_roster(roster))

    async def validate_assignment(
        self,
        identity_mode: GitIdentityMode,
        roster: Roster,
        assignment_id: str,
    ) -> GatewayResult[ValidationResult]:
        if roster.find_assignment(assignment_id) is None:
            return GatewayResult.failure(f"Assignment '{assignment_id}' not found")
        return GatewayResult.success(validate_assignment(roster, assignment_id, identity_mode))

    async def ensure_system_group_sets(
        self, roster: Roster
    ) -> GatewayResult[SystemGroupSetPatch]:
        return GatewayResult.success(compute_system_group_sets(roster, self._ids))

    async def get_default_settings(self) -> ProfileSettings:
        return self.default_settings.model_copy(deep=True)
