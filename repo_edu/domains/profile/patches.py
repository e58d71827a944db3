# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Forward and inverse patches for profile documents.

A patch is one of three tagged variants:
- SetField: replace the value at a path
- SpliceCollection: replace a contiguous slice of a list
- ReplaceCollection: replace a whole list

Collection patches carry the items they expect to find, so replaying a
patch over a collection that changed outside history raises
PatchConflictError instead of silently overwriting it.

Paths are tuples of attribute names from the document root, e.g.
``("roster", "groups")`` or ``("settings", "exports")``. The empty path
addresses the document itself.

diff_documents compares two documents section by section and returns
the minimal forward patches together with their inverses. Values held by
patches are deep copies, so later edits never leak into history.
"""

import copy
from dataclasses import dataclass
from typing import Any

from repo_edu.domains.profile.models import ProfileDocument, ProfileSettings
from repo_edu.domains.roster.models import Roster

Path = tuple[str | int, ...]

ROSTER_COLLECTIONS = ("students", "staff", "groups", "group_sets", "assignments")


class PatchConflictError(Exception):
    """Raised when a patch does not fit the document it is applied to."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        location = "/".join(str(p) for p in path) or "<document>"
        super().__init__(f"Patch conflict at {location}: {reason}")


@dataclass(frozen=True)
class SetField:
    path: Path
    value: Any


@dataclass(frozen=True)
class SpliceCollection:
    path: Path
    index: int
    removed: tuple[Any, ...]
    inserted: tuple[Any, ...]


@dataclass(frozen=True)
class ReplaceCollection:
    path: Path
    replaced: tuple[Any, ...]
    items: tuple[Any, ...]


Patch = SetField | SpliceCollection | ReplaceCollection


def _frozen_copy(items: list[Any]) -> tuple[Any, ...]:
    return tuple(copy.deepcopy(item) for item in items)


def diff_collection(
    path: Path, before: list[Any], after: list[Any]
) -> tuple[list[Patch], list[Patch]]:
    """Diff two lists into at most one patch each way.

    The common prefix and suffix are trimmed; what remains becomes a
    single splice. When nothing is shared at either end the whole list is
    replaced instead.
    """
    if before == after:
        return [], []

    limit = min(len(before), len(after))
    prefix = 0
    while prefix < limit and before[prefix] == after[prefix]:
        prefix += 1

    suffix = 0
    while (
        suffix < limit - prefix
        and before[len(before) - 1 - suffix] == after[len(after) - 1 - suffix]
    ):
        suffix += 1

    if prefix == 0 and suffix == 0 and before and after:
        return (
            [ReplaceCollection(path, _frozen_copy(before), _frozen_copy(after))],
            [ReplaceCollection(path, _frozen_copy(after), _frozen_copy(before))],
        )

    removed = _frozen_copy(before[prefix : len(before) - suffix])
    inserted = _frozen_copy(after[prefix : len(after) - suffix])
    return (
        [SpliceCollection(path, prefix, removed, inserted)],
        [SpliceCollection(path, prefix, inserted, removed)],
    )


def _diff_value(path: Path, before: Any, after: Any) -> tuple[list[Patch], list[Patch]]:
    if before == after:
        return [], []
    return (
        [SetField(path, copy.deepcopy(after))],
        [SetField(path, copy.deepcopy(before))],
    )


def _diff_settings(
    before: ProfileSettings, after: ProfileSettings
) -> tuple[list[Patch], list[Patch]]:
    forward: list[Patch] = []
    inverse: list[Patch] = []
    for name in ProfileSettings.model_fields:
        fwd, inv = _diff_value(("settings", name), getattr(before, name), getattr(after, name))
        forward.extend(fwd)
        inverse.extend(inv)
    return forward, inverse


def _diff_roster(before: Roster | None, after: Roster | None) -> tuple[list[Patch], list[Patch]]:
    if before is None or after is None:
        return _diff_value(("roster",), before, after)

    forward, inverse = _diff_value(("roster", "connection"), before.connection, after.connection)
    for name in ROSTER_COLLECTIONS:
        fwd, inv = diff_collection(("roster", name), getattr(before, name), getattr(after, name))
        forward.extend(fwd)
        inverse.extend(inv)
    return forward, inverse


def diff_documents(
    before: ProfileDocument | None, after: ProfileDocument | None
) -> tuple[list[Patch], list[Patch]]:
    """Compute forward and inverse patches between two documents.

    Args:
        before: Document before the change (None when absent).
        after: Document after the change (None when absent).

    Returns:
        Tuple of (forward patches, inverse patches). Both are empty when
        the documents are structurally equal. Inverse patches are ordered
        for application after the forward ones have been applied.
    """
    if before is None or after is None:
        return _diff_value((), before, after)

    forward, inverse = _diff_settings(before.settings, after.settings)

    fwd, inv = _diff_roster(before.roster, after.roster)
    forward.extend(fwd)
    inverse.extend(inv)

    fwd, inv = _diff_value(
        ("resolved_identity_mode",),
        before.resolved_identity_mode,
        after.resolved_identity_mode,
    )
    forward.extend(fwd)
    inverse.extend(inv)

    inverse.reverse()
    return forward, inverse


def _resolve_parent(document: ProfileDocument | None, path: Path) -> Any:
    target: Any = document
    for step in path[:-1]:
        if target is None:
            raise PatchConflictError(path, "path does not exist")
        target = target[step] if isinstance(step, int) else getattr(target, step)
    if target is None:
        raise PatchConflictError(path, "path does not exist")
    return target


def _get(parent: Any, key: str | int) -> Any:
    return parent[key] if isinstance(key, int) else getattr(parent, key)


def _set(parent: Any, key: str | int, value: Any) -> None:
    if isinstance(key, int):
        parent[key] = value
    else:
        setattr(parent, key, value)


def apply_patch(document: ProfileDocument | None, patch: Patch) -> ProfileDocument | None:
    """Apply one patch in place and return the (possibly new) document.

    Raises:
        PatchConflictError: If the patch does not fit the document.
    """
    if not patch.path:
        if not isinstance(patch, SetField):
            raise PatchConflictError(patch.path, "only SetField may target the document")
        return copy.deepcopy(patch.value)

    parent = _resolve_parent(document, patch.path)
    key = patch.path[-1]

    match patch:
        case SetField(value=value):
            _set(parent, key, copy.deepcopy(value))
        case ReplaceCollection(replaced=replaced, items=items):
            if tuple(_get(parent, key)) != replaced:
                raise PatchConflictError(patch.path, "collection does not match")
            _set(parent, key, [copy.deepcopy(item) for item in items])
        case SpliceCollection(index=index, removed=removed, inserted=inserted):
            collection = _get(parent, key)
            if not isinstance(collection, list):
                raise PatchConflictError(patch.path, "target is not a collection")
            end = index + len(removed)
            if end > len(collection) or tuple(collection[index:end]) != removed:
                raise PatchConflictError(patch.path, f"slice at {index} does not match")
            collection[index:end] = [copy.deepcopy(item) for item in inserted]

    return document


def apply_patches(
    document: ProfileDocument | None, patches: list[Patch]
) -> ProfileDocument | None:
    """Apply patches to a copy of a document.

    The input document is never modified.

    Raises:
        PatchConflictError: If any patch does not fit; the input document
            is untouched in that case.
    """
    result = copy.deepcopy(document)
    for patch in patches:
        result = apply_patch(result, patch)
    return result


def touched_sections(patches: list[Patch]) -> set[str] | None:
    """Top-level document attributes changed by patches.

    Returns:
        Set of attribute names, or None when a patch replaces the whole
        document.
    """
    sections: set[str] = set()
    for patch in patches:
        if not patch.path:
            return None
        sections.add(str(patch.path[0]))
    return sections


def share_untouched(
    previous: ProfileDocument | None,
    current: ProfileDocument | None,
    patches: list[Patch],
) -> ProfileDocument | None:
    """Reuse unchanged top-level sections of ``previous`` in ``current``.

    Keeps object identity stable for settings or roster when a change did
    not touch them, which identity-memoized selectors rely on.
    """
    if previous is None or current is None:
        return current
    sections = touched_sections(patches)
    if sections is None:
        return current
    if "settings" not in sections:
        current.settings = previous.settings
    if "roster" not in sections:
        current.roster = previous.roster
    return current
