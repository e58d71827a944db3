# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the profile DocumentStore.

Tests cover:
- Mutations, integrity cascades and read-only guards
- Undo/redo round trips and the history bound
- Selection handling
- Load, save and stale response handling
- System group set reconciliation and validation results
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from repo_edu.core.config import DocumentStoreSettings
from repo_edu.domains.profile.identity import GitConnectionRegistry
from repo_edu.domains.profile.models import CourseInfo, ProfileDocument, ProfileSettings
from repo_edu.domains.profile.store import DocumentStatus, DocumentStore, MemberTransferMode
from repo_edu.domains.roster.models import (
    EnrollmentType,
    GitIdentityMode,
    Group,
    GroupSet,
    Roster,
    SystemConnection,
    SystemType,
)
from repo_edu.domains.roster.validation import ValidationKind
from repo_edu.infrastructure.gateway.memory import InMemoryCommandGateway
from repo_edu.infrastructure.gateway.ports import GatewayError, GatewayResult


# =============================================================================
# Fixtures
# =============================================================================


class GatedGateway(InMemoryCommandGateway):
    """In-memory gateway whose profile loads can be held back."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.gates: dict[str, asyncio.Event] = {}

    async def load_profile(self, profile_name: str):
        gate = self.gates.get(profile_name)
        if gate is not None:
            await gate.wait()
        return await super().load_profile(profile_name)


def staff_set(set_id: str) -> GroupSet:
    return GroupSet(
        id=set_id,
        name="Staff",
        connection=SystemConnection(system_type=SystemType.STAFF),
    )


@pytest.fixture
def make_store(
    git_registry: GitConnectionRegistry,
    id_generator,
    store_settings: DocumentStoreSettings,
):
    """Provide a factory for empty stores over a given gateway."""
    created: list[DocumentStore] = []

    def factory(gateway) -> DocumentStore:
        document_store = DocumentStore(
            gateway=gateway,
            identity_resolver=git_registry,
            id_generator=id_generator,
            settings=store_settings,
        )
        created.append(document_store)
        return document_store

    yield factory
    for document_store in created:
        document_store.scheduler.cancel()


# =============================================================================
# Mutations
# =============================================================================


class TestMutations:
    """Tests for committed mutations and their guards."""

    def test_set_document_initial_state(self, store: DocumentStore) -> None:
        """Test that installing a document resets session state."""
        assert store.status == DocumentStatus.LOADED
        assert store.selected_assignment_id == "a1"
        assert store.can_undo is False
        assert store.system_sets_ready is False

    def test_add_member_creates_document(
        self, make_store, gateway: InMemoryCommandGateway, member_factory
    ) -> None:
        """Test that adding to an empty store creates document and roster."""
        document_store = make_store(gateway)

        assert document_store.add_member(member_factory("s1", "Alice Smith")) is True

        assert document_store.status == DocumentStatus.LOADED
        assert [m.id for m in document_store.roster.students] == ["s1"]

        document_store.undo()

        assert document_store.document is None

    def test_remove_member_cascades_in_one_entry(self, store: DocumentStore) -> None:
        """Test that removing a member strips it from groups in one entry."""
        assert store.remove_member("s1") is True

        roster = store.roster
        assert roster.find_member("s1") is None
        assert roster.find_group("g1").member_ids == ["s2"]
        assert roster.find_group("g3").member_ids == ["s3"]
        assert len(store.history.past) == 1
        assert store.history.next_undo_description == "Remove member Alice Smith"

        store.undo()

        assert store.roster.find_group("g1").member_ids == ["s1", "s2"]
        assert store.roster.find_group("g3").member_ids == ["s1", "s3"]

    def test_delete_shared_group_set_keeps_shared_groups(self, store: DocumentStore) -> None:
        """Test that groups still referenced elsewhere survive set deletion."""
        assert store.delete_group_set("gs-labs") is True

        roster = store.roster
        assert roster.find_group_set("gs-labs") is None
        assert roster.find_group("g1") is not None
        assert roster.find_group("g2") is None
        assert roster.find_assignment("a1").group_set_id == "gs-labs"

    def test_lms_group_is_read_only(self, store: DocumentStore) -> None:
        """Test that LMS groups cannot be edited or moved into."""
        assert store.update_group("g-lms", {"name": "renamed"}) is False
        assert store.copy_member_to_group("s1", "g-lms") is False

        assert store.roster.find_group("g-lms").name == "canvas-team"
        assert store.can_undo is False

    def test_delete_group_removes_lms_group(self, store: DocumentStore) -> None:
        """Test that deleting a group ignores its origin and cascades to sets."""
        assert store.delete_group("g-lms") is True

        assert store.roster.find_group("g-lms") is None
        assert store.roster.find_group_set("gs-canvas").group_ids == []
        assert store.history.next_undo_description == "Delete group canvas-team"

        store.undo()

        assert store.roster.find_group("g-lms") is not None
        assert store.roster.find_group_set("gs-canvas").group_ids == ["g-lms"]

    def test_deleting_every_set_of_shared_group_removes_it(self, store: DocumentStore) -> None:
        """Test that a shared group goes once its last set is deleted."""
        assert store.delete_group_set("gs-labs") is True
        assert store.roster.find_group("g1") is not None

        assert store.delete_group_set("gs-projects") is True

        assert store.roster.find_group("g1") is None
        assert store.roster.find_group("g3") is None

        store.undo()
        store.undo()

        group_ids = [g.id for g in store.roster.groups]
        assert "g1" in group_ids
        assert store.roster.find_group_set("gs-labs").group_ids == ["g1", "g2"]
        assert store.roster.find_group_set("gs-projects").group_ids == ["g1", "g3"]

    def test_update_group_keeps_identity_fields(self, store: DocumentStore) -> None:
        """Test that id and origin cannot be changed through updates."""
        assert store.update_group("g1", {"name": "alpha", "id": "other", "origin": "lms"}) is True

        group = store.roster.find_group("g1")
        assert group.name == "alpha"
        assert group.is_editable is True

    def test_rename_to_same_name_is_noop(self, store: DocumentStore) -> None:
        """Test that an identical rename records nothing."""
        assert store.rename_group_set("gs-labs", "Labs") is False
        assert store.rename_group_set("gs-labs", "  Labs  ") is False
        assert store.rename_group_set("gs-labs", "   ") is False
        assert store.can_undo is False

    def test_create_group_requires_local_set(self, store: DocumentStore) -> None:
        """Test that groups can only be created in sets accepting local groups."""
        assert store.create_group("gs-canvas", "extra") is None
        assert store.create_group("gs-labs", "  ") is None

        group_id = store.create_group("gs-labs", " team-3 ", ["s2"])

        assert group_id is not None
        assert store.roster.find_group(group_id).name == "team-3"
        assert store.roster.find_group_set("gs-labs").group_ids[-1] == group_id

    def test_failed_recipe_leaves_document_unchanged(self, store: DocumentStore) -> None:
        """Test that an invalid update is rejected without a history entry."""
        before = store.document

        assert store.update_member("s1", {"enrollment_type": "wizard"}) is False

        assert store.document is before
        assert store.can_undo is False

    def test_update_member_moves_between_partitions(self, store: DocumentStore) -> None:
        """Test that an enrollment change moves a member to staff."""
        assert store.update_member("s3", {"enrollment_type": EnrollmentType.TA}) is True

        roster = store.roster
        assert [m.id for m in roster.students] == ["s1", "s2"]
        assert [m.id for m in roster.staff] == ["t1", "s3"]

    def test_move_member_between_local_groups(self, store: DocumentStore) -> None:
        """Test that a move removes the member from the source group."""
        assert store.move_member_to_group("s2", "g1", "g2") is True

        assert store.roster.find_group("g1").member_ids == ["s1"]
        assert store.roster.find_group("g2").member_ids == ["s3", "s2"]

    def test_create_group_set_with_member_names(self, store: DocumentStore) -> None:
        """Test default set naming and move semantics."""
        first = store.create_group_set_with_member("s1", "g1", MemberTransferMode.MOVE)
        second = store.create_group_set_with_member("s3", None, MemberTransferMode.COPY)

        roster = store.roster
        assert roster.find_group_set(first).name == "New Group Set"
        assert roster.find_group_set(second).name == "New Group Set (2)"
        assert roster.find_group("g1").member_ids == ["s2"]
        new_group = roster.find_group(roster.find_group_set(first).group_ids[0])
        assert new_group.member_ids == ["s1"]

    def test_copy_lms_group_set_is_local(self, store: DocumentStore) -> None:
        """Test that copying an LMS set yields an editable local set."""
        copy_id = store.copy_group_set("gs-canvas")

        copied = store.roster.find_group_set(copy_id)
        assert copied.name == "Canvas teams (copy)"
        assert copied.connection is None
        assert copied.group_ids == ["g-lms"]

    def test_remove_group_from_set_sweeps_orphans(self, store: DocumentStore) -> None:
        """Test that a group left in no set is removed."""
        assert store.remove_group_from_set("gs-labs", "g2") is True

        assert store.roster.find_group("g2") is None

    def test_normalize_collapses_duplicate_system_sets(self, store: DocumentStore) -> None:
        """Test that normalization keeps one set per system type."""
        roster = store.roster.model_copy(deep=True)
        roster.group_sets.extend([staff_set("staff-a"), staff_set("staff-b")])
        store.set_roster(roster)

        assert store.normalize_roster() is True

        staff_ids = [gs.id for gs in store.roster.group_sets if gs.system_type == SystemType.STAFF]
        assert staff_ids == ["staff-a"]

    @pytest.mark.asyncio
    async def test_unchanged_roster_keeps_derived_state(self, store: DocumentStore) -> None:
        """Test that setting an identical roster keeps sync and validation state."""
        await store.ensure_system_group_sets()
        await store.scheduler.flush()
        results = store.assignment_validations

        assert store.set_roster(store.roster.model_copy(deep=True)) is False

        assert store.system_sets_ready is True
        assert store.assignment_validations is results
        assert store.assignment_validation is not None
        store.scheduler.cancel()


# =============================================================================
# Undo / redo
# =============================================================================


class TestUndoRedo:
    """Tests for history replay."""

    def test_round_trip(self, store: DocumentStore) -> None:
        """Test that n undos restore the start and n redos the end."""
        snapshots = [store.document.model_copy(deep=True)]
        steps = [
            lambda: store.remove_member("s1"),
            lambda: store.rename_group_set("gs-projects", "Projects 2"),
            lambda: store.create_group("gs-labs", "team-3", ["s2"]) is not None,
            lambda: store.set_course(CourseInfo(id="c1", name="Algorithms")),
            lambda: store.delete_group_set("gs-labs"),
            lambda: store.update_exports({"output_csv": True}),
        ]
        for step in steps:
            assert step() is True
            snapshots.append(store.document.model_copy(deep=True))

        for expected in reversed(snapshots[:-1]):
            assert store.undo() is not None
            assert store.document == expected

        assert store.undo() is None

        for expected in snapshots[1:]:
            assert store.redo() is not None
            assert store.document == expected

        assert store.redo() is None

    def test_history_is_bounded(self, store: DocumentStore) -> None:
        """Test that only the latest 100 entries can be undone."""
        for i in range(150):
            assert store.rename_group_set("gs-labs", f"Labs {i}") is True

        assert len(store.history.past) == 100

        undone = 0
        while store.undo() is not None:
            undone += 1

        assert undone == 100
        assert store.roster.find_group_set("gs-labs").name == "Labs 49"

    def test_new_mutation_discards_redo(self, store: DocumentStore) -> None:
        """Test that committing after undo drops the redo branch."""
        store.rename_group_set("gs-labs", "A")
        store.rename_group_set("gs-labs", "B")
        store.undo()

        store.rename_group_set("gs-labs", "C")

        assert store.can_redo is False
        assert store.redo() is None
        assert store.roster.find_group_set("gs-labs").name == "C"

    def test_undo_repairs_selection(self, store: DocumentStore) -> None:
        """Test that a restored assignment becomes selectable again."""
        store.delete_assignment("a1")
        assert store.selected_assignment_id is None

        store.undo()

        assert store.selected_assignment_id == "a1"

    def test_redo_repairs_selection(self, store: DocumentStore) -> None:
        """Test that redoing a deletion clears a dangling selection."""
        store.delete_assignment("a1")
        store.undo()

        store.redo()

        assert store.selected_assignment_id is None

    def test_conflicting_history_is_cleared(self, store: DocumentStore) -> None:
        """Test that history no longer matching the document is dropped."""
        store.remove_member("s1")
        replaced = store.document.model_copy(deep=True)
        replaced.roster.groups = []
        store._document = replaced

        assert store.undo() is None
        assert store.can_undo is False
        assert store.document is replaced


# =============================================================================
# Settings and selection
# =============================================================================


class TestSettingsAndSelection:
    """Tests for settings mutations and assignment selection."""

    def test_git_connection_resolves_identity_mode(self, store: DocumentStore) -> None:
        """Test that the identity mode follows the git connection."""
        assert store.set_git_connection("gitlab-email") is True
        assert store.document.resolved_identity_mode == GitIdentityMode.EMAIL

        store.undo()

        assert store.document.settings.git_connection is None
        assert store.document.resolved_identity_mode == GitIdentityMode.USERNAME

    def test_settings_change_keeps_roster_identity(self, store: DocumentStore) -> None:
        """Test that a settings mutation shares the unchanged roster."""
        roster = store.roster

        store.set_course(CourseInfo(id="c9", name="Compilers"))
        store.undo()

        assert store.roster is roster

    def test_update_operations_merges(self, store: DocumentStore) -> None:
        """Test that partial operation updates are deep-merged."""
        assert store.update_operations({"clone": {"target_dir": "/tmp/repos"}}) is True

        clone = store.document.settings.operations.clone
        assert clone.target_dir == "/tmp/repos"
        assert clone.directory_layout.value == "flat"
        assert store.history.next_undo_description == "Update operations"

    def test_refresh_identity_mode_is_not_recorded(
        self, store: DocumentStore, git_registry: GitConnectionRegistry
    ) -> None:
        """Test that re-resolving the identity mode skips history."""
        store.set_git_connection("github")
        store.history.clear()
        git_registry.register(
            "github",
            git_registry.get("gitlab-email"),
        )

        store.refresh_identity_mode()

        assert store.document.resolved_identity_mode == GitIdentityMode.EMAIL
        assert store.can_undo is False

    def test_select_unknown_assignment_is_ignored(self, store: DocumentStore) -> None:
        """Test that selecting an unknown assignment keeps the selection."""
        store.set_selected_assignment("nope")

        assert store.selected_assignment_id == "a1"

    def test_create_assignment_with_select(self, store: DocumentStore) -> None:
        """Test that a created assignment can be selected immediately."""
        assignment_id = store.create_assignment("lab-2", "gs-projects", select=True)

        assert assignment_id is not None
        assert store.selected_assignment_id == assignment_id

    def test_delete_selected_assignment_reselects(self, store: DocumentStore) -> None:
        """Test that deleting the selection falls back to the first assignment."""
        second = store.create_assignment("lab-2", "gs-projects", select=True)

        store.delete_assignment(second)

        assert store.selected_assignment_id == "a1"


# =============================================================================
# Session lifecycle
# =============================================================================


class TestLoadAndSave:
    """Tests for load, save and session resets."""

    @pytest.mark.asyncio
    async def test_load_profile(self, make_store, gateway: InMemoryCommandGateway) -> None:
        """Test that a load installs settings and roster."""
        document_store = make_store(gateway)

        result = await document_store.load("course")

        assert result.ok is True
        assert result.stale is False
        assert document_store.status == DocumentStatus.LOADED
        assert document_store.roster.find_assignment("a1") is not None
        assert document_store.selected_assignment_id == "a1"
        assert document_store.can_undo is False

    @pytest.mark.asyncio
    async def test_unknown_profile_falls_back_to_defaults(
        self, make_store, gateway: InMemoryCommandGateway
    ) -> None:
        """Test that failed settings fall back to default settings."""
        gateway.default_settings = ProfileSettings(git_connection="gitlab-email")
        document_store = make_store(gateway)

        result = await document_store.load("missing")

        assert result.ok is False
        assert result.error.startswith("settings:")
        assert document_store.status == DocumentStatus.LOADED
        assert document_store.document.settings.git_connection == "gitlab-email"
        assert document_store.document.resolved_identity_mode == GitIdentityMode.EMAIL
        assert document_store.roster is None

    @pytest.mark.asyncio
    async def test_transport_error_sets_error_status(self, make_store) -> None:
        """Test that a raised gateway error leaves the store in error."""
        failing = AsyncMock()
        failing.load_profile.side_effect = GatewayError("load_profile", "connection refused")
        failing.get_roster.return_value = GatewayResult.success(None)
        document_store = make_store(failing)

        result = await document_store.load("course")

        assert result.ok is False
        assert document_store.status == DocumentStatus.ERROR
        assert "connection refused" in document_store.error

    @pytest.mark.asyncio
    async def test_stale_load_is_discarded(self, make_store, sample_roster: Roster, id_generator) -> None:
        """Test that a load overtaken by a newer one applies nothing."""
        gated = GatedGateway(
            profiles={
                "old": (ProfileSettings(git_connection="github"), Roster()),
                "course": (ProfileSettings(), sample_roster),
            },
            id_generator=id_generator,
        )
        gated.gates["old"] = asyncio.Event()
        document_store = make_store(gated)

        first = asyncio.create_task(document_store.load("old"))
        await asyncio.sleep(0)
        second = await document_store.load("course")
        gated.gates["old"].set()
        stale = await first

        assert second.ok is True
        assert stale.stale is True
        assert document_store.document.settings.git_connection is None
        assert document_store.roster.find_assignment("a1") is not None

    @pytest.mark.asyncio
    async def test_reset_invalidates_inflight_load(
        self, make_store, sample_roster: Roster, id_generator
    ) -> None:
        """Test that reset makes an in-flight load stale."""
        gated = GatedGateway(
            profiles={"course": (ProfileSettings(), sample_roster)}, id_generator=id_generator
        )
        gated.gates["course"] = asyncio.Event()
        document_store = make_store(gated)

        pending = asyncio.create_task(document_store.load("course"))
        await asyncio.sleep(0)
        document_store.reset()
        gated.gates["course"].set()
        result = await pending

        assert result.stale is True
        assert document_store.status == DocumentStatus.EMPTY
        assert document_store.document is None

    @pytest.mark.asyncio
    async def test_save_clears_history(
        self, store: DocumentStore, gateway: InMemoryCommandGateway
    ) -> None:
        """Test that a successful save persists and clears history."""
        store.rename_group_set("gs-labs", "Lab teams")

        assert await store.save("course") is True

        assert store.can_undo is False
        assert store.status == DocumentStatus.LOADED
        roster_result = await gateway.get_roster("course")
        assert roster_result.data.find_group_set("gs-labs").name == "Lab teams"
        store.scheduler.cancel()

    @pytest.mark.asyncio
    async def test_failed_save_keeps_history(self, store: DocumentStore) -> None:
        """Test that a failed save reports the error and keeps history."""
        store._gateway = AsyncMock()
        store._gateway.save_profile_and_roster.return_value = GatewayResult.failure("disk full")
        store.rename_group_set("gs-labs", "Lab teams")

        assert await store.save("course") is False

        assert store.error == "disk full"
        assert store.can_undo is True
        store.scheduler.cancel()

    def test_clear(self, store: DocumentStore) -> None:
        """Test that clear drops the document and session state."""
        store.rename_group_set("gs-labs", "Lab teams")

        store.clear()

        assert store.document is None
        assert store.status == DocumentStatus.EMPTY
        assert store.can_undo is False
        assert store.selected_assignment_id is None


# =============================================================================
# System group sets and validation
# =============================================================================


class TestSystemSetsAndValidation:
    """Tests for derived data computed through the gateway."""

    @pytest.mark.asyncio
    async def test_ensure_system_group_sets(self, store: DocumentStore) -> None:
        """Test that system sets are merged outside history."""
        assert await store.ensure_system_group_sets() is True

        assert store.system_sets_ready is True
        assert store.can_undo is False
        types = {gs.system_type for gs in store.roster.group_sets if gs.is_system}
        assert types == {SystemType.INDIVIDUAL_STUDENTS, SystemType.STAFF}
        store.scheduler.cancel()

    @pytest.mark.asyncio
    async def test_system_sets_are_protected(self, store: DocumentStore) -> None:
        """Test that system sets cannot be renamed, deleted or extended."""
        await store.ensure_system_group_sets()
        system_set = next(gs for gs in store.roster.group_sets if gs.is_system)

        assert store.rename_group_set(system_set.id, "Mine") is False
        assert store.delete_group_set(system_set.id) is False
        assert store.add_group_to_set(system_set.id, "g1") is False
        assert store.create_group(system_set.id, "extra") is None
        store.scheduler.cancel()

    @pytest.mark.asyncio
    async def test_duplicate_staff_sets_collapse(self, store: DocumentStore) -> None:
        """Test that reconciliation leaves exactly one staff set."""
        roster = store.roster.model_copy(deep=True)
        roster.group_sets.extend([staff_set("staff-a"), staff_set("staff-b")])
        store.set_roster(roster)

        await store.ensure_system_group_sets()

        staff_sets = [gs for gs in store.roster.group_sets if gs.system_type == SystemType.STAFF]
        assert [gs.id for gs in staff_sets] == ["staff-a"]
        assert len(staff_sets[0].group_ids) == 1
        store.scheduler.cancel()

    @pytest.mark.asyncio
    async def test_undo_after_sync_keeps_system_groups(
        self, store: DocumentStore, member_factory
    ) -> None:
        """Test that undoing a whole-list replace never drops synced system groups."""
        store.set_document(
            ProfileDocument(
                roster=Roster(
                    students=[member_factory("s1", "Alice Smith")],
                    groups=[Group(id="g1", name="team-1", member_ids=["s1"])],
                    group_sets=[GroupSet(id="gs1", name="Teams", group_ids=["g1"])],
                )
            )
        )
        assert store.update_group("g1", {"name": "team-one"}) is True
        assert await store.ensure_system_group_sets() is True
        synced_groups = len(store.roster.groups)

        assert store.undo() is None

        roster = store.roster
        assert store.can_undo is False
        assert len(roster.groups) == synced_groups
        assert roster.find_group("g1").name == "team-one"
        group_ids = {g.id for g in roster.groups}
        assert all(gid in group_ids for gs in roster.group_sets for gid in gs.group_ids)
        store.scheduler.cancel()

    @pytest.mark.asyncio
    async def test_undo_of_splice_after_sync(self, store: DocumentStore) -> None:
        """Test that a slice-level edit still undoes cleanly after a sync."""
        assert store.update_group("g1", {"name": "alpha"}) is True
        await store.ensure_system_group_sets()
        system_groups = [g.id for g in store.roster.groups if g.id not in {"g1", "g2", "g3", "g-lms"}]

        assert store.undo() is not None

        roster = store.roster
        assert roster.find_group("g1").name == "team-1"
        assert system_groups
        assert all(roster.find_group(gid) is not None for gid in system_groups)
        store.scheduler.cancel()

    @pytest.mark.asyncio
    async def test_flush_stores_validation_results(self, store: DocumentStore) -> None:
        """Test that flushed validation results land on the store."""
        await store.scheduler.flush()

        assert {i.kind for i in store.roster_validation.issues} == {
            ValidationKind.SYSTEM_GROUP_SETS_MISSING
        }
        assert set(store.assignment_validations) == {"a1"}
        assert store.assignment_validation.issues == []

        await store.ensure_system_group_sets()
        await store.scheduler.flush()

        assert store.roster_validation.issues == []

    @pytest.mark.asyncio
    async def test_deleted_set_reported_on_assignment(self, store: DocumentStore) -> None:
        """Test that an assignment on a deleted set is flagged."""
        store.delete_group_set("gs-labs")

        await store.scheduler.flush()

        kinds = {i.kind for i in store.assignment_validation.issues}
        assert kinds == {ValidationKind.MISSING_GROUP_SET}

    @pytest.mark.asyncio
    async def test_validation_from_old_session_is_discarded(self, store: DocumentStore) -> None:
        """Test that a validation response arriving after a reload is dropped."""
        gate = asyncio.Event()
        real_gateway = store._gateway

        async def slow_validate(roster):
            await gate.wait()
            return await real_gateway.validate_roster(roster)

        store._gateway = AsyncMock(wraps=real_gateway)
        store._gateway.validate_roster.side_effect = slow_validate

        pending = asyncio.create_task(store.validate_roster())
        await asyncio.sleep(0)
        store.set_document(ProfileDocument())
        gate.set()
        await pending

        assert store.roster_validation is None
        store.scheduler.cancel()
