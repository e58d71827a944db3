# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Group selection for assignments.

An assignment applies to the groups of its group set, optionally narrowed
by a shell-style glob over group names and always minus the explicitly
excluded group ids.

The glob dialect is deliberately small: ``*``, ``?``, bracket classes
(``[abc]``, ``[a-z]``, ``[!x]``) and backslash escapes. Recursive ``**``,
brace expansion and extglob groups are rejected. Invalid patterns select
no groups.
"""

import re
from functools import lru_cache

from pydantic import BaseModel, Field

from repo_edu.domains.roster.models import (
    AllGroupsSelection,
    Assignment,
    Group,
    GroupSet,
    PatternSelection,
    Roster,
)


class GlobPatternError(ValueError):
    """Raised for patterns outside the supported glob dialect."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid pattern '{pattern}': {reason}")


def _parse_char_class(pattern: str, start: int) -> tuple[str, int]:
    """Translate the bracket expression at ``start`` to a regex class.

    Returns:
        The regex fragment and the index just past the closing bracket.
    """
    i = start + 1
    negated = False
    if i < len(pattern) and pattern[i] in ("!", "^"):
        negated = True
        i += 1

    members: list[str] = []
    if i < len(pattern) and pattern[i] == "]":
        members.append("]")
        i += 1

    while i < len(pattern):
        ch = pattern[i]
        if ch == "]":
            if not members:
                raise GlobPatternError(pattern, "empty bracket expression '[]' is not allowed")
            body = "".join(re.escape(m) for m in members)
            return f"[{'^' if negated else ''}{body}]", i + 1

        if i + 2 < len(pattern) and pattern[i + 1] == "-" and pattern[i + 2] != "]":
            end = pattern[i + 2]
            if ch <= end:
                members.extend(chr(c) for c in range(ord(ch), ord(end) + 1))
            else:
                members.extend([ch, "-", end])
            i += 3
        else:
            members.append(ch)
            i += 1

    raise GlobPatternError(pattern, "unclosed '[' bracket")


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a glob pattern into an anchored regular expression.

    Raises:
        GlobPatternError: If the pattern uses an unsupported construct.
    """
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        nxt = pattern[i + 1] if i + 1 < len(pattern) else ""
        if ch == "\\":
            if not nxt:
                raise GlobPatternError(pattern, "pattern ends with unescaped backslash")
            parts.append(re.escape(nxt))
            i += 2
            continue
        if ch == "*":
            if nxt == "*":
                raise GlobPatternError(pattern, "recursive glob '**' is not allowed")
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        elif ch == "[":
            fragment, i = _parse_char_class(pattern, i)
            parts.append(fragment)
            continue
        elif ch == "{":
            raise GlobPatternError(pattern, "brace expansion is not allowed")
        elif ch in ("@", "+", "!") and nxt == "(":
            raise GlobPatternError(pattern, "extglob patterns are not allowed")
        else:
            parts.append(re.escape(ch))
        i += 1

    return re.compile("".join(parts), re.DOTALL)


def validate_glob_pattern(pattern: str) -> str | None:
    """Return the reason a pattern is invalid, or None when it is valid."""
    try:
        compile_glob(pattern)
    except GlobPatternError as e:
        return e.reason
    return None


def glob_match(pattern: str, text: str) -> bool:
    """Match text against a glob. Invalid patterns match nothing."""
    try:
        return compile_glob(pattern).fullmatch(text) is not None
    except GlobPatternError:
        return False


def groups_in_set(roster: Roster, group_set: GroupSet) -> list[Group]:
    """Groups referenced by a set, in set order, skipping dangling ids."""
    by_id = {g.id: g for g in roster.groups}
    return [by_id[gid] for gid in group_set.group_ids if gid in by_id]


def resolve_groups_from_selection(
    roster: Roster,
    group_set: GroupSet,
    selection: AllGroupsSelection | PatternSelection,
) -> list[Group]:
    """Apply a selection mode to a group set."""
    groups = groups_in_set(roster, group_set)

    if isinstance(selection, PatternSelection):
        try:
            regex = compile_glob(selection.pattern)
        except GlobPatternError:
            return []
        groups = [g for g in groups if regex.fullmatch(g.name)]

    excluded = set(selection.excluded_group_ids)
    return [g for g in groups if g.id not in excluded]


def resolve_assignment_groups(roster: Roster, assignment: Assignment) -> list[Group]:
    """Groups an assignment applies to; empty when its set is missing."""
    group_set = roster.find_group_set(assignment.group_set_id)
    if group_set is None:
        return []
    return resolve_groups_from_selection(roster, group_set, assignment.group_selection)


class GroupSelectionPreview(BaseModel):
    """Outcome of previewing a selection against a group set."""

    valid: bool
    error: str | None = None
    group_ids: list[str] = Field(default_factory=list)
    empty_group_ids: list[str] = Field(default_factory=list)
    group_member_counts: dict[str, int] = Field(default_factory=dict)
    total_groups: int = 0
    matched_groups: int = 0


def preview_group_selection(
    roster: Roster,
    group_set_id: str,
    selection: AllGroupsSelection | PatternSelection,
) -> GroupSelectionPreview:
    """Preview which groups a selection picks, with pattern diagnostics."""
    group_set = roster.find_group_set(group_set_id)
    if group_set is None:
        return GroupSelectionPreview(valid=False, error="Group set not found")

    groups = groups_in_set(roster, group_set)
    total = len(groups)

    if isinstance(selection, PatternSelection):
        error = validate_glob_pattern(selection.pattern)
        if error is not None:
            return GroupSelectionPreview(valid=False, error=error, total_groups=total)
        regex = compile_glob(selection.pattern)
        groups = [g for g in groups if regex.fullmatch(g.name)]

    matched = len(groups)
    excluded = set(selection.excluded_group_ids)
    final = [g for g in groups if g.id not in excluded]

    return GroupSelectionPreview(
        valid=True,
        group_ids=[g.id for g in final],
        empty_group_ids=[g.id for g in final if not g.member_ids],
        group_member_counts={g.id: len(g.member_ids) for g in final},
        total_groups=total,
        matched_groups=matched,
    )
