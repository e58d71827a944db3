# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the undo/redo history manager."""

import pytest

from repo_edu.domains.profile.history import HistoryEntry, HistoryManager
from repo_edu.domains.profile.models import ProfileDocument
from repo_edu.domains.profile.patches import PatchConflictError, SetField


# =============================================================================
# Fixtures
# =============================================================================


def connection_entry(before: str | None, after: str | None) -> HistoryEntry:
    """Entry that changes the git connection name."""
    return HistoryEntry(
        patches=(SetField(("settings", "git_connection"), after),),
        inverse_patches=(SetField(("settings", "git_connection"), before),),
        description=f"Set git connection {after}",
    )


@pytest.fixture
def document() -> ProfileDocument:
    """Provide a document whose git connection is 'b'."""
    doc = ProfileDocument()
    doc.settings.git_connection = "b"
    return doc


class TestHistoryManager:
    """Tests for HistoryManager."""

    def test_empty_history(self) -> None:
        """Test that a new history has nothing to undo or redo."""
        history = HistoryManager()

        assert history.can_undo is False
        assert history.can_redo is False
        assert history.undo(ProfileDocument()) is None
        assert history.redo(ProfileDocument()) is None
        assert history.next_undo_description is None

    def test_undo_applies_inverse_patches(self, document: ProfileDocument) -> None:
        """Test that undo restores the previous value and moves the entry."""
        history = HistoryManager()
        history.commit(connection_entry("a", "b"))

        restored, entry = history.undo(document)

        assert restored.settings.git_connection == "a"
        assert document.settings.git_connection == "b"
        assert entry.description == "Set git connection b"
        assert history.can_undo is False
        assert history.next_redo_description == "Set git connection b"

    def test_redo_reapplies_forward_patches(self, document: ProfileDocument) -> None:
        """Test that redo re-applies the undone entry."""
        history = HistoryManager()
        history.commit(connection_entry("a", "b"))
        restored, _ = history.undo(document)

        redone, _ = history.redo(restored)

        assert redone.settings.git_connection == "b"
        assert history.can_redo is False
        assert history.can_undo is True

    def test_commit_discards_future(self, document: ProfileDocument) -> None:
        """Test that a new commit after undo clears the redo stack."""
        history = HistoryManager()
        history.commit(connection_entry("a", "b"))
        history.undo(document)

        history.commit(connection_entry("a", "c"))

        assert history.can_redo is False
        assert history.next_undo_description == "Set git connection c"

    def test_limit_drops_oldest_entries(self) -> None:
        """Test that the undo stack never exceeds its limit."""
        history = HistoryManager(limit=3)

        for i in range(5):
            history.commit(connection_entry(str(i), str(i + 1)))

        assert len(history.past) == 3
        assert history.past[0].description == "Set git connection 3"

    def test_conflict_leaves_stacks_unchanged(self) -> None:
        """Test that a failing undo does not move the entry."""
        history = HistoryManager()
        history.commit(connection_entry("a", "b"))

        with pytest.raises(PatchConflictError):
            history.undo(None)

        assert history.can_undo is True
        assert history.can_redo is False

    def test_clear(self, document: ProfileDocument) -> None:
        """Test that clear empties both stacks."""
        history = HistoryManager()
        history.commit(connection_entry("a", "b"))
        history.commit(connection_entry("b", "c"))
        history.undo(document)

        history.clear()

        assert history.can_undo is False
        assert history.can_redo is False
