# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Profile document store.

The DocumentStore owns the profile document of one editing session. It:
- loads and saves profiles through a CommandGateway
- applies mutations atomically through recipes run on a draft
- records forward and inverse patches for undo/redo
- reconciles the system group sets
- schedules debounced validation after every committed change

Mutations are synchronous. Load, save, validation and system group set
computation are async; their results are discarded when a newer load or
a session change superseded them.

Example:
    >>> store = DocumentStore(gateway=InMemoryCommandGateway(...))
    >>> await store.load("course-2025")
    >>> store.rename_group_set(group_set_id, "Lab teams")
    >>> store.undo()
"""

import asyncio
import copy
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from repo_edu.core.config.settings import DocumentStoreSettings, get_settings
from repo_edu.domains.profile import recipes
from repo_edu.domains.profile.history import HistoryEntry, HistoryManager
from repo_edu.domains.profile.identity import GitConnectionRegistry, IdentityModeResolver
from repo_edu.domains.profile.models import (
    CourseInfo,
    ExportSettings,
    OperationConfigs,
    ProfileDocument,
    ProfileSettings,
)
from repo_edu.domains.profile.patches import PatchConflictError, diff_documents, share_untouched
from repo_edu.domains.profile.recipes import Draft
from repo_edu.domains.profile.validation_scheduler import ValidationScheduler
from repo_edu.domains.roster.integrity import merge_system_patch
from repo_edu.domains.roster.models import (
    AllGroupsSelection,
    Assignment,
    AssignmentType,
    Group,
    GroupSet,
    PatternSelection,
    Roster,
    RosterMember,
)
from repo_edu.domains.roster.validation import ValidationResult
from repo_edu.infrastructure.gateway.ports import CommandGateway, GatewayError
from repo_edu.utils.ids import IdGenerator, IdKind, UuidIdGenerator
from repo_edu.utils.logging import bind_context, clear_context, get_logger

logger = get_logger(__name__)

NEW_GROUP_SET_NAME = "New Group Set"


class DocumentStatus(str, Enum):
    """Lifecycle status of the store's document."""

    EMPTY = "empty"
    LOADING = "loading"
    SAVING = "saving"
    LOADED = "loaded"
    ERROR = "error"


class MemberTransferMode(str, Enum):
    """Whether a member leaves its source group when placed elsewhere."""

    MOVE = "move"
    COPY = "copy"


@dataclass(frozen=True)
class LoadResult:
    """Outcome of DocumentStore.load().

    Attributes:
        ok: Whether settings and roster both loaded.
        profile_name: Profile that was requested.
        warnings: Load warnings reported by the gateway.
        error: Error message for a partial or failed load.
        stale: True when a newer load superseded this one; nothing was
            applied in that case.
    """

    ok: bool
    profile_name: str
    warnings: list[str] = field(default_factory=list)
    error: str | None = None
    stale: bool = False


class DocumentStore:
    """Holds and edits one profile document.

    Attributes:
        status: Document lifecycle status.
        error: Last load/save error message.
        warnings: Warnings reported by the last load.
        selected_assignment_id: Focused assignment; not part of history.
        system_sets_ready: Whether system group sets were reconciled since
            the roster was last loaded or replaced.
        roster_validation: Latest roster validation result.
        assignment_validations: Latest validation result per assignment.
        assignment_validation: Result for the selected assignment.
        history: Undo/redo history.
        scheduler: Debounced validation scheduler.
    """

    def __init__(
        self,
        gateway: CommandGateway,
        identity_resolver: IdentityModeResolver | None = None,
        id_generator: IdGenerator | None = None,
        settings: DocumentStoreSettings | None = None,
    ) -> None:
        settings = settings or get_settings().store
        self._gateway = gateway
        self._resolver = identity_resolver or GitConnectionRegistry()
        self._ids = id_generator or UuidIdGenerator()

        self.history = HistoryManager(limit=settings.history_limit)
        self.scheduler = ValidationScheduler(
            run_roster=self.validate_roster,
            run_assignments=self.validate_assignments,
            delay_seconds=settings.validation_debounce_seconds,
        )

        self._document: ProfileDocument | None = None
        self.status = DocumentStatus.EMPTY
        self.error: str | None = None
        self.warnings: list[str] = []
        self.selected_assignment_id: str | None = None
        self.system_sets_ready = False
        self.roster_validation: ValidationResult | None = None
        self.assignment_validations: dict[str, ValidationResult] = {}
        self.assignment_validation: ValidationResult | None = None

        self._load_sequence = 0
        self._session = 0
        self._roster_validation_sequence = 0
        self._assignment_validation_sequence = 0

    # =========================================================================
    # State access
    # =========================================================================

    @property
    def document(self) -> ProfileDocument | None:
        """Current document. Treat it as read-only."""
        return self._document

    @property
    def roster(self) -> Roster | None:
        return self._document.roster if self._document is not None else None

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    # =========================================================================
    # Mutation protocol
    # =========================================================================

    def _mutate(self, description: str, recipe: Callable[..., None], *args: Any) -> bool:
        """Run a recipe on a draft and commit the result.

        Returns:
            True if the document changed and a history entry was recorded.
        """
        before = self._document
        draft = Draft(copy.deepcopy(before))
        try:
            recipe(draft, *args)
        except Exception:
            logger.exception("mutation_failed", description=description)
            return False

        forward, inverse = diff_documents(before, draft.document)
        if not forward:
            logger.debug("mutation_noop", description=description)
            return False

        self._document = share_untouched(before, draft.document, forward)
        if before is None:
            self.status = DocumentStatus.LOADED
        self.history.commit(
            HistoryEntry(patches=tuple(forward), inverse_patches=tuple(inverse), description=description)
        )
        self.scheduler.schedule_all()
        logger.debug("mutation_committed", description=description, patches=len(forward))
        return True

    def _member_name(self, member_id: str) -> str:
        roster = self.roster
        member = roster.find_member(member_id) if roster is not None else None
        return member.name if member is not None else "member"

    # =========================================================================
    # Members
    # =========================================================================

    def add_member(self, member: RosterMember) -> bool:
        return self._mutate(f"Add member {member.name}", recipes.add_member, member)

    def update_member(self, member_id: str, updates: dict[str, Any]) -> bool:
        description = f"Edit member {self._member_name(member_id)}"
        return self._mutate(description, recipes.update_member, member_id, updates)

    def remove_member(self, member_id: str) -> bool:
        description = f"Remove member {self._member_name(member_id)}"
        return self._mutate(description, recipes.remove_member, member_id)

    # =========================================================================
    # Assignments
    # =========================================================================

    def add_assignment(self, assignment: Assignment, select: bool = False) -> bool:
        committed = self._mutate(
            f"Add assignment {assignment.name}", recipes.add_assignment, assignment
        )
        if committed and select:
            self.set_selected_assignment(assignment.id)
        return committed

    def create_assignment(
        self,
        name: str,
        group_set_id: str,
        description: str | None = None,
        assignment_type: AssignmentType = AssignmentType.CLASS_WIDE,
        group_selection: AllGroupsSelection | PatternSelection | None = None,
        select: bool = False,
    ) -> str | None:
        """Create an assignment with a generated id.

        Returns:
            The new assignment id, or None if nothing was created.
        """
        assignment = Assignment(
            id=self._ids.new_id(IdKind.ASSIGNMENT),
            name=name,
            description=description,
            assignment_type=assignment_type,
            group_set_id=group_set_id,
            group_selection=group_selection or AllGroupsSelection(),
        )
        return assignment.id if self.add_assignment(assignment, select=select) else None

    def update_assignment(self, assignment_id: str, updates: dict[str, Any]) -> bool:
        roster = self.roster
        assignment = roster.find_assignment(assignment_id) if roster is not None else None
        name = assignment.name if assignment is not None else "assignment"
        return self._mutate(
            f"Edit assignment {name}", recipes.update_assignment, assignment_id, updates
        )

    def delete_assignment(self, assignment_id: str) -> bool:
        roster = self.roster
        assignment = roster.find_assignment(assignment_id) if roster is not None else None
        if assignment is None:
            return False
        committed = self._mutate(
            f"Delete assignment {assignment.name}", recipes.delete_assignment, assignment_id
        )
        if committed and self.selected_assignment_id == assignment_id:
            self.set_selected_assignment(self._default_selection())
        return committed

    # =========================================================================
    # Selection (not part of history)
    # =========================================================================

    def _default_selection(self) -> str | None:
        roster = self.roster
        if roster is None or not roster.assignments:
            return None
        return roster.assignments[0].id

    def set_selected_assignment(self, assignment_id: str | None) -> None:
        roster = self.roster
        if assignment_id is not None and (
            roster is None or roster.find_assignment(assignment_id) is None
        ):
            return
        self.selected_assignment_id = assignment_id
        self.assignment_validation = (
            self.assignment_validations.get(assignment_id) if assignment_id else None
        )

    def _repair_selection(self) -> None:
        roster = self.roster
        selected = self.selected_assignment_id
        if selected is None or roster is None or roster.find_assignment(selected) is None:
            self.set_selected_assignment(self._default_selection())

    # =========================================================================
    # Groups
    # =========================================================================

    def create_group(
        self, group_set_id: str, name: str, member_ids: list[str] | None = None
    ) -> str | None:
        """Create a local group inside a set.

        Returns:
            The new group id, or None when the set is missing, system or
            LMS-linked, or the name is blank.
        """
        group = Group(
            id=self._ids.new_id(IdKind.GROUP),
            name=name.strip(),
            member_ids=list(member_ids or []),
        )
        committed = self._mutate(
            f"Create group {group.name}", recipes.create_group, group_set_id, group
        )
        return group.id if committed else None

    def update_group(self, group_id: str, updates: dict[str, Any]) -> bool:
        roster = self.roster
        group = roster.find_group(group_id) if roster is not None else None
        name = group.name if group is not None else "group"
        return self._mutate(f"Edit group {name}", recipes.update_group, group_id, updates)

    def delete_group(self, group_id: str) -> bool:
        roster = self.roster
        group = roster.find_group(group_id) if roster is not None else None
        if group is None:
            return False
        return self._mutate(f"Delete group {group.name}", recipes.delete_group, group_id)

    def add_group_to_set(self, group_set_id: str, group_id: str) -> bool:
        return self._mutate("Add group to set", recipes.add_group_to_set, group_set_id, group_id)

    def remove_group_from_set(self, group_set_id: str, group_id: str) -> bool:
        return self._mutate(
            "Remove group from set", recipes.remove_group_from_set, group_set_id, group_id
        )

    def move_member_to_group(
        self, member_id: str, source_group_id: str, target_group_id: str
    ) -> bool:
        return self._mutate(
            "Move member to group",
            recipes.move_member_to_group,
            member_id,
            source_group_id,
            target_group_id,
        )

    def copy_member_to_group(self, member_id: str, target_group_id: str) -> bool:
        return self._mutate(
            "Copy member to group", recipes.copy_member_to_group, member_id, target_group_id
        )

    def create_group_set_with_member(
        self,
        member_id: str,
        source_group_id: str | None,
        mode: MemberTransferMode,
    ) -> str | None:
        """Create a local group set holding one new group with the member.

        The set is named "New Group Set", or "New Group Set (n)" when
        that name is taken.

        Returns:
            The new group set id, or None if the member is unknown.
        """
        roster = self.roster
        member = roster.find_member(member_id) if roster is not None else None
        if roster is None or member is None:
            return None

        existing = {gs.name for gs in roster.group_sets}
        name = NEW_GROUP_SET_NAME
        counter = 2
        while name in existing:
            name = f"{NEW_GROUP_SET_NAME} ({counter})"
            counter += 1

        group = Group(id=self._ids.new_id(IdKind.GROUP), name=member.name, member_ids=[member_id])
        group_set = GroupSet(
            id=self._ids.new_id(IdKind.GROUP_SET), name=name, group_ids=[group.id]
        )
        verb = "Move" if mode == MemberTransferMode.MOVE else "Copy"
        committed = self._mutate(
            f'{verb} member to new group set "{name}"',
            recipes.create_group_set_with_member,
            member_id,
            group_set,
            group,
            source_group_id,
            mode == MemberTransferMode.MOVE,
        )
        return group_set.id if committed else None

    def create_group_in_set_with_member(
        self,
        member_id: str,
        group_set_id: str,
        source_group_id: str | None,
        mode: MemberTransferMode,
    ) -> str | None:
        """Create a new group with the member inside an existing set.

        Returns:
            The new group id, or None if nothing was created.
        """
        roster = self.roster
        member = roster.find_member(member_id) if roster is not None else None
        if roster is None or member is None:
            return None

        group = Group(id=self._ids.new_id(IdKind.GROUP), name=member.name, member_ids=[member_id])
        verb = "Move" if mode == MemberTransferMode.MOVE else "Copy"
        committed = self._mutate(
            f'{verb} member to new group "{member.name}"',
            recipes.create_group_in_set_with_member,
            member_id,
            group_set_id,
            group,
            source_group_id,
            mode == MemberTransferMode.MOVE,
        )
        return group.id if committed else None

    # =========================================================================
    # Group sets
    # =========================================================================

    def create_local_group_set(self, name: str, group_ids: list[str] | None = None) -> str | None:
        trimmed = name.strip()
        if not trimmed:
            return None
        group_set = GroupSet(
            id=self._ids.new_id(IdKind.GROUP_SET), name=trimmed, group_ids=list(group_ids or [])
        )
        committed = self._mutate(
            f"Create group set {trimmed}", recipes.create_local_group_set, group_set
        )
        return group_set.id if committed else None

    def copy_group_set(self, group_set_id: str) -> str | None:
        roster = self.roster
        source = roster.find_group_set(group_set_id) if roster is not None else None
        if source is None:
            return None
        new_id = self._ids.new_id(IdKind.GROUP_SET)
        committed = self._mutate(
            f"Copy group set {source.name}", recipes.copy_group_set, group_set_id, new_id
        )
        return new_id if committed else None

    def rename_group_set(self, group_set_id: str, name: str) -> bool:
        trimmed = name.strip()
        if not trimmed:
            return False
        return self._mutate(
            f"Rename group set {trimmed}", recipes.rename_group_set, group_set_id, trimmed
        )

    def delete_group_set(self, group_set_id: str) -> bool:
        roster = self.roster
        group_set = roster.find_group_set(group_set_id) if roster is not None else None
        if group_set is None:
            return False
        return self._mutate(
            f"Delete group set {group_set.name}", recipes.delete_group_set, group_set_id
        )

    # =========================================================================
    # Whole roster
    # =========================================================================

    def set_roster(self, roster: Roster, description: str = "Update roster") -> bool:
        """Replace the roster (imports and LMS syncs)."""
        committed = self._mutate(description, recipes.set_roster, roster)
        if committed:
            self.system_sets_ready = False
            self.assignment_validations = {}
            self.assignment_validation = None
            self._repair_selection()
        return committed

    def normalize_roster(self) -> bool:
        return self._mutate("Normalize roster", recipes.normalize_roster)

    def cleanup_orphaned_groups(self) -> bool:
        return self._mutate("Cleanup orphaned groups", recipes.cleanup_orphaned_groups)

    # =========================================================================
    # Settings
    # =========================================================================

    def set_course(self, course: CourseInfo) -> bool:
        return self._mutate("Set course", recipes.set_course, course)

    def set_course_verified_at(self, timestamp: str | None) -> bool:
        return self._mutate("Verify course", recipes.set_course_verified_at, timestamp)

    def set_git_connection(self, name: str | None) -> bool:
        return self._mutate("Set git connection", recipes.set_git_connection, name, self._resolver)

    def update_operations(self, updates: dict[str, Any]) -> bool:
        return self._mutate("Update operations", recipes.update_operations, updates)

    def set_operations(self, operations: OperationConfigs) -> bool:
        return self._mutate("Update operations", recipes.set_operations, operations)

    def update_exports(self, updates: dict[str, Any]) -> bool:
        return self._mutate("Update exports", recipes.update_exports, updates)

    def set_exports(self, exports: ExportSettings) -> bool:
        return self._mutate("Update exports", recipes.set_exports, exports)

    def refresh_identity_mode(self) -> None:
        """Re-resolve the identity mode after app settings changed.

        The identity mode is derived data, so this is not recorded in
        history.
        """
        document = self._document
        if document is None:
            return
        mode = self._resolver.resolve_identity_mode(document.settings.git_connection)
        if mode != document.resolved_identity_mode:
            updated = document.model_copy()
            updated.resolved_identity_mode = mode
            self._document = updated
            self.scheduler.schedule_assignments()

    # =========================================================================
    # Undo / redo
    # =========================================================================

    def undo(self) -> HistoryEntry | None:
        """Revert the latest committed change.

        Returns:
            The undone entry, or None when there was nothing to undo or the
            history no longer fits the document.
        """
        return self._replay(self.history.undo, "undo")

    def redo(self) -> HistoryEntry | None:
        """Re-apply the most recently undone change."""
        return self._replay(self.history.redo, "redo")

    def _replay(self, step: Callable, action: str) -> HistoryEntry | None:
        try:
            outcome = step(self._document)
        except PatchConflictError as e:
            logger.error("history_replay_conflict", action=action, reason=str(e))
            self.history.clear()
            return None
        if outcome is None:
            return None

        document, entry = outcome
        patches = entry.inverse_patches if action == "undo" else entry.patches
        self._document = share_untouched(self._document, document, list(patches))
        self._repair_selection()
        self.scheduler.schedule_all()
        logger.debug("history_replayed", action=action, description=entry.description)
        return entry

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    def _install(self, document: ProfileDocument) -> None:
        """Make a document current and reset all session state."""
        self._session += 1
        self._document = document
        self.status = DocumentStatus.LOADED
        self.error = None
        self.system_sets_ready = False
        self.roster_validation = None
        self.assignment_validations = {}
        self.assignment_validation = None
        self.selected_assignment_id = None
        self.set_selected_assignment(self._default_selection())
        self.history.clear()
        self.scheduler.cancel()
        self.scheduler.schedule_all()

    def _resolve(self, settings: ProfileSettings) -> ProfileDocument:
        return ProfileDocument(
            settings=settings,
            resolved_identity_mode=self._resolver.resolve_identity_mode(settings.git_connection),
        )

    async def load(self, profile_name: str) -> LoadResult:
        """Load a profile's settings and roster.

        A load superseded by a newer one returns a stale result and applies
        nothing. When settings fail to load, default settings are used
        together with whatever roster did load.
        """
        self._load_sequence += 1
        sequence = self._load_sequence
        self.status = DocumentStatus.LOADING
        self.error = None
        self.warnings = []

        bind_context(profile=profile_name)
        try:
            return await self._load(profile_name, sequence)
        finally:
            clear_context()

    def _is_stale_load(self, sequence: int) -> bool:
        if sequence != self._load_sequence:
            logger.debug("stale_load_discarded", sequence=sequence, latest=self._load_sequence)
            return True
        return False

    async def _load(self, profile_name: str, sequence: int) -> LoadResult:
        try:
            settings_result, roster_result = await asyncio.gather(
                self._gateway.load_profile(profile_name),
                self._gateway.get_roster(profile_name),
            )
        except GatewayError as e:
            if self._is_stale_load(sequence):
                return LoadResult(ok=False, profile_name=profile_name, stale=True)
            self.status = DocumentStatus.ERROR
            self.error = str(e)
            logger.error("profile_load_failed", error=str(e))
            return LoadResult(ok=False, profile_name=profile_name, error=str(e))

        if self._is_stale_load(sequence):
            return LoadResult(ok=False, profile_name=profile_name, stale=True)

        roster = roster_result.data if roster_result.ok else None

        if not settings_result.ok or settings_result.data is None:
            error = f"settings: {settings_result.error}"
            try:
                defaults = await self._gateway.get_default_settings()
            except GatewayError as e:
                if self._is_stale_load(sequence):
                    return LoadResult(ok=False, profile_name=profile_name, stale=True)
                self.status = DocumentStatus.ERROR
                self.error = error
                logger.error("default_settings_unavailable", error=str(e))
                return LoadResult(ok=False, profile_name=profile_name, error=error)

            if self._is_stale_load(sequence):
                return LoadResult(ok=False, profile_name=profile_name, stale=True)

            document = self._resolve(defaults)
            document.roster = roster
            self._install(document)
            logger.warning("profile_settings_defaulted", error=error)
            return LoadResult(ok=False, profile_name=profile_name, error=error)

        loaded = settings_result.data
        document = self._resolve(loaded.settings)
        self.warnings = list(loaded.warnings)

        if not roster_result.ok:
            error = f"roster: {roster_result.error}"
            self._install(document)
            logger.warning("roster_load_failed", error=error)
            return LoadResult(
                ok=False, profile_name=profile_name, warnings=list(loaded.warnings), error=error
            )

        document.roster = roster
        self._install(document)
        for warning in loaded.warnings:
            logger.warning("profile_load_warning", warning=warning)
        logger.info(
            "profile_loaded",
            students=len(roster.students) if roster else 0,
            assignments=len(roster.assignments) if roster else 0,
        )
        return LoadResult(ok=True, profile_name=profile_name, warnings=list(loaded.warnings))

    async def save(self, profile_name: str) -> bool:
        """Save settings and roster. A successful save clears history."""
        document = self._document
        if document is None:
            return False

        session = self._session
        self.status = DocumentStatus.SAVING
        self.error = None

        try:
            result = await self._gateway.save_profile_and_roster(
                profile_name, document.settings, document.roster
            )
        except GatewayError as e:
            if session == self._session:
                self.status = DocumentStatus.LOADED
                self.error = str(e)
            logger.error("profile_save_failed", profile=profile_name, error=str(e))
            return False

        if session != self._session:
            logger.debug("stale_save_discarded", profile=profile_name)
            return result.ok

        self.status = DocumentStatus.LOADED
        if not result.ok:
            self.error = result.error
            logger.error("profile_save_failed", profile=profile_name, error=result.error)
            return False

        self.error = None
        self.history.clear()
        logger.info("profile_saved", profile=profile_name)
        return True

    def set_document(self, document: ProfileDocument) -> None:
        """Install a document directly (e.g. a newly created profile)."""
        self._install(document.model_copy(deep=True))

    def clear(self) -> None:
        """Discard the document and all session state."""
        self._session += 1
        self._document = None
        self.status = DocumentStatus.EMPTY
        self.error = None
        self.warnings = []
        self.selected_assignment_id = None
        self.system_sets_ready = False
        self.roster_validation = None
        self.assignment_validations = {}
        self.assignment_validation = None
        self.history.clear()
        self.scheduler.cancel()

    def reset(self) -> None:
        """Return to the initial state, also invalidating in-flight loads."""
        self._load_sequence += 1
        self.clear()

    # =========================================================================
    # System group sets
    # =========================================================================

    async def ensure_system_group_sets(self) -> bool:
        """Reconcile the system group sets with the current roster.

        The merge is a derived-data refresh and is not recorded in history.

        Returns:
            True if a patch was merged.
        """
        roster = self.roster
        if roster is None:
            return False

        session = self._session
        try:
            result = await self._gateway.ensure_system_group_sets(roster.model_copy(deep=True))
        except GatewayError as e:
            logger.warning("system_group_sets_failed", error=str(e))
            return False

        if session != self._session:
            logger.debug("stale_system_group_sets_discarded")
            return False
        if not result.ok or result.data is None:
            logger.warning("system_group_sets_failed", error=result.error)
            return False

        current = self._document
        if current is None or current.roster is None:
            return False

        merged = current.roster.model_copy(deep=True)
        merge_system_patch(merged, result.data)
        updated = current.model_copy()
        updated.roster = merged
        self._document = updated
        self.system_sets_ready = True
        self.scheduler.schedule_all()
        logger.debug(
            "system_group_sets_merged",
            upserted=len(result.data.groups_upserted),
            deleted=len(result.data.deleted_group_ids),
        )
        return True

    # =========================================================================
    # Validation
    # =========================================================================

    async def validate_roster(self) -> None:
        """Validate the roster and store the result."""
        self._roster_validation_sequence += 1
        sequence = self._roster_validation_sequence
        session = self._session

        roster = self.roster
        if roster is None:
            self.roster_validation = None
            return

        try:
            result = await self._gateway.validate_roster(roster.model_copy(deep=True))
        except GatewayError as e:
            logger.warning("roster_validation_failed", error=str(e))
            return

        if session != self._session or sequence != self._roster_validation_sequence:
            logger.debug("stale_roster_validation_discarded")
            return
        if not result.ok:
            logger.warning("roster_validation_failed", error=result.error)
            return
        self.roster_validation = result.data

    async def validate_assignments(self) -> None:
        """Validate every assignment and store a result per assignment."""
        self._assignment_validation_sequence += 1
        sequence = self._assignment_validation_sequence
        session = self._session

        document = self._document
        if document is None or document.roster is None:
            self.assignment_validations = {}
            self.assignment_validation = None
            return

        roster = document.roster.model_copy(deep=True)
        mode = document.resolved_identity_mode
        assignment_ids = [a.id for a in roster.assignments]
        outcomes = await asyncio.gather(
            *(self._gateway.validate_assignment(mode, roster, aid) for aid in assignment_ids),
            return_exceptions=True,
        )

        if session != self._session or sequence != self._assignment_validation_sequence:
            logger.debug("stale_assignment_validation_discarded")
            return

        validations: dict[str, ValidationResult] = {}
        for assignment_id, outcome in zip(assignment_ids, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(
                    "assignment_validation_failed", assignment_id=assignment_id, error=str(outcome)
                )
            elif outcome.ok and outcome.data is not None:
                validations[assignment_id] = outcome.data
            else:
                logger.warning(
                    "assignment_validation_failed", assignment_id=assignment_id, error=outcome.error
                )

        self.assignment_validations = validations
        selected = self.selected_assignment_id
        self.assignment_validation = validations.get(selected) if selected else None
