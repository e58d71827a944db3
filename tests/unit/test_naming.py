# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for slug, group name and repository name generation."""

import pytest

from repo_edu.domains.roster.models import Assignment, Group
from repo_edu.domains.roster.naming import (
    compute_repo_name,
    generate_group_name,
    generate_unique_group_name,
    resolve_collision,
    short_id,
    slugify,
)


class TestSlugify:
    """Tests for slugify."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("Hello World", "hello-world"),
            ("Jürgen Müller", "jurgen-muller"),
            ("snake_case name", "snake-case-name"),
            ("  --trim--  ", "trim"),
            ("a -- b", "a-b"),
            ("C++ & Rust!", "c-rust"),
            ("", ""),
        ],
    )
    def test_slugify(self, value: str, expected: str) -> None:
        """Test slug conversion."""
        assert slugify(value) == expected

    def test_length_is_capped(self) -> None:
        """Test that slugs are capped at 100 characters."""
        assert len(slugify("x" * 150)) == 100


class TestGroupNames:
    """Tests for generated group names."""

    def test_single_member(self, member_factory) -> None:
        """Test first_last naming for one member."""
        assert generate_group_name([member_factory("s1", "Alice van Smith")]) == "alice_smith"

    def test_single_word_name(self, member_factory) -> None:
        """Test that a one-word name fills both name parts."""
        assert generate_group_name([member_factory("s1", "Prince")]) == "prince_prince"

    def test_unsluggable_name_uses_short_id(self, member_factory) -> None:
        """Test that names without ASCII letters fall back to the id."""
        member = member_factory("abcd1234", "李", email="li@uni.edu")

        assert generate_group_name([member]) == "member-abcd"

    def test_multiple_members_use_surnames(self, member_factory) -> None:
        """Test surname joining for small groups."""
        members = [member_factory("s1", "Alice Smith"), member_factory("s2", "Bob Jones")]

        assert generate_group_name(members) == "smith-jones"

    def test_large_groups_are_truncated(self, member_factory) -> None:
        """Test that only five surnames are listed."""
        members = [member_factory(f"s{i}", f"Member Name{i}") for i in range(7)]

        assert generate_group_name(members) == "name0-name1-name2-name3-name4-+2"

    def test_empty_group(self) -> None:
        """Test the name for a memberless group."""
        assert generate_group_name([]) == "empty-group"


class TestCollisions:
    """Tests for collision resolution."""

    def test_short_id(self) -> None:
        """Test that short ids use the first four hex characters."""
        assert short_id("F00D-beef") == "f00d"
        assert short_id("member-12") == "ebe1"

    def test_unique_name_prefers_member_suffix(self, member_factory) -> None:
        """Test that a single-member collision appends the short id."""
        member = member_factory("ab12cd", "Alice Smith")

        assert generate_unique_group_name([member], {"alice_smith"}) == "alice_smith_ab12"

    def test_counter_after_suffix_collision(self) -> None:
        """Test that a numeric counter follows a taken suffix."""
        existing = {"team", "team_ab12", "team-2"}

        assert resolve_collision("team", existing, "ab12") == "team-3"

    def test_counter_without_member(self) -> None:
        """Test that multi-member collisions go straight to the counter."""
        assert resolve_collision("smith-jones", {"smith-jones"}) == "smith-jones-2"


class TestRepoNames:
    """Tests for repository naming."""

    def test_default_template(self) -> None:
        """Test the assignment-group template."""
        assignment = Assignment(id="a1", name="Lab 1", group_set_id="gs")
        group = Group(id="g1", name="Team Alpha")

        assert compute_repo_name("{assignment}-{group}", assignment, group) == "lab-1-team-alpha"

    def test_unsupported_placeholders_expand_to_nothing(self) -> None:
        """Test that initials and surnames placeholders are dropped."""
        assignment = Assignment(id="a1", name="lab", group_set_id="gs")
        group = Group(id="g1", name="x")

        assert compute_repo_name("{assignment}-{initials}{group}", assignment, group) == "lab-x"
