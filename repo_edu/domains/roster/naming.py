# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Slugs, group names and repository names.

Group names generated for members follow a fixed scheme:
- one member: ``first_last`` from the member's display name
- up to five members: surnames joined with ``-``
- more: the first five surnames plus ``-+<remaining>``

Collisions are resolved with a short hex suffix taken from the member id,
then with a numeric counter.
"""

import unicodedata
from uuid import uuid4

from repo_edu.domains.roster.models import Assignment, Group, RosterMember

MAX_SLUG_LENGTH = 100
MAX_SURNAMES = 5
DEFAULT_REPO_TEMPLATE = "{assignment}-{group}"


def slugify(value: str) -> str:
    """Convert text to a lowercase ASCII slug.

    Accents are folded (``Müller`` becomes ``muller``), spaces and
    underscores become hyphens, other punctuation is dropped and hyphen
    runs collapse. The result is capped at 100 characters.

    Args:
        value: Arbitrary text.

    Returns:
        The slug, possibly empty.
    """
    folded = unicodedata.normalize("NFKD", value)
    ascii_text = folded.encode("ascii", "ignore").decode("ascii").lower()

    chars: list[str] = []
    last_was_hyphen = False
    for ch in ascii_text:
        if ch in (" ", "_"):
            ch = "-"
        if ch.isascii() and ch.isalnum():
            chars.append(ch)
            last_was_hyphen = False
        elif ch == "-" and not last_was_hyphen:
            chars.append("-")
            last_was_hyphen = True

    slug = "".join(chars).strip("-")
    if len(slug) > MAX_SLUG_LENGTH:
        slug = slug[:MAX_SLUG_LENGTH].rstrip("-")
    return slug


def short_id(entity_id: str) -> str:
    """First four hex characters of an id, lowercased."""
    hex_chars = [c for c in entity_id if c in "0123456789abcdefABCDEF"]
    return "".join(hex_chars[:4]).lower()


def _first_word(name: str) -> str:
    words = name.split()
    return words[0] if words else ""


def _last_word(name: str) -> str:
    words = name.split()
    return words[-1] if words else ""


def _surname(member: RosterMember) -> str:
    return slugify(_last_word(member.name)) or short_id(member.id)


def generate_group_name(members: list[RosterMember]) -> str:
    """Build the base group name for a list of members."""
    if not members:
        return "empty-group"

    if len(members) == 1:
        member = members[0]
        first = slugify(_first_word(member.name))
        last = slugify(_last_word(member.name))
        if not first and not last:
            return f"member-{short_id(member.id)}"
        if not first:
            return last
        if not last:
            return first
        return f"{first}_{last}"

    surnames = [_surname(m) for m in members[:MAX_SURNAMES]]
    joined = "-".join(surnames)
    if len(members) > MAX_SURNAMES:
        return f"{joined}-+{len(members) - MAX_SURNAMES}"
    return joined


def resolve_collision(
    base_name: str,
    existing_names: set[str],
    member_id: str | None = None,
) -> str:
    """Derive a name not in ``existing_names`` from ``base_name``."""
    if member_id is not None:
        candidate = f"{base_name}_{short_id(member_id)}"
        if candidate not in existing_names:
            return candidate

    for counter in range(2, 1001):
        candidate = f"{base_name}-{counter}"
        if candidate not in existing_names:
            return candidate

    return f"{base_name}-{uuid4().hex[:8]}"


def generate_unique_group_name(
    members: list[RosterMember],
    existing_names: set[str],
) -> str:
    """Generate a group name for members that avoids existing names."""
    base_name = generate_group_name(members)
    if base_name not in existing_names:
        return base_name

    member_id = members[0].id if len(members) == 1 else None
    return resolve_collision(base_name, existing_names, member_id)


def expand_template(template: str, assignment: Assignment, group: Group) -> str:
    """Fill a repository name template.

    Supported placeholders are ``{assignment}``, ``{group}`` and
    ``{group_id}``. ``{initials}`` and ``{surnames}`` expand to nothing.
    """
    return (
        template.replace("{assignment}", assignment.name)
        .replace("{group}", group.name)
        .replace("{group_id}", group.id)
        .replace("{initials}", "")
        .replace("{surnames}", "")
    )


def compute_repo_name(template: str, assignment: Assignment, group: Group) -> str:
    """Repository name for an assignment/group pair."""
    return slugify(expand_template(template, assignment, group))
