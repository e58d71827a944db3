# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Undo/redo history of committed document changes.

Entries hold the forward and inverse patches of one mutation. Integrity
cascades ran before the patches were captured, so replaying an entry
replays the cascade too.
"""

from collections import deque
from dataclasses import dataclass, field

from repo_edu.domains.profile.models import ProfileDocument
from repo_edu.domains.profile.patches import Patch, apply_patches

DEFAULT_HISTORY_LIMIT = 100


@dataclass(frozen=True)
class HistoryEntry:
    """One committed, undoable change."""

    patches: tuple[Patch, ...]
    inverse_patches: tuple[Patch, ...]
    description: str


@dataclass
class HistoryManager:
    """Bounded undo stack plus redo stack.

    ``past`` is oldest first; ``future`` is soonest first. Committing a
    new entry discards ``future``. Only undo depth is bounded.

    Attributes:
        limit: Maximum number of undoable entries.
    """

    limit: int = DEFAULT_HISTORY_LIMIT
    past: deque[HistoryEntry] = field(default_factory=deque)
    future: deque[HistoryEntry] = field(default_factory=deque)

    def commit(self, entry: HistoryEntry) -> None:
        self.past.append(entry)
        self.future.clear()
        self._trim()

    def undo(
        self, document: ProfileDocument | None
    ) -> tuple[ProfileDocument | None, HistoryEntry] | None:
        """Apply the latest entry's inverse patches.

        Returns:
            The restored document and the undone entry, or None when
            there is nothing to undo.

        Raises:
            PatchConflictError: If the inverse patches do not fit. The
                stacks are left unchanged.
        """
        if not self.past:
            return None
        entry = self.past[-1]
        restored = apply_patches(document, list(entry.inverse_patches))
        self.past.pop()
        self.future.appendleft(entry)
        return restored, entry

    def redo(
        self, document: ProfileDocument | None
    ) -> tuple[ProfileDocument | None, HistoryEntry] | None:
        """Re-apply the next undone entry's forward patches.

        Returns:
            The updated document and the redone entry, or None when there
            is nothing to redo.

        Raises:
            PatchConflictError: If the forward patches do not fit. The
                stacks are left unchanged.
        """
        if not self.future:
            return None
        entry = self.future[0]
        updated = apply_patches(document, list(entry.patches))
        self.future.popleft()
        self.past.append(entry)
        self._trim()
        return updated, entry

    def clear(self) -> None:
        self.past.clear()
        self.future.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self.past)

    @property
    def can_redo(self) -> bool:
        return bool(self.future)

    @property
    def next_undo_description(self) -> str | None:
        return self.past[-1].description if self.past else None

    @property
    def next_redo_description(self) -> str | None:
        return self.future[0].description if self.future else None

    def _trim(self) -> None:
        while len(self.past) > self.limit:
            self.past.popleft()
