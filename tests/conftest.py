# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across the unit tests:
- Deterministic id generation
- Roster builders
- In-process gateway and document store
"""

from collections.abc import Callable, Iterator
from itertools import count

import pytest

from repo_edu.core.config import DocumentStoreSettings, clear_settings_cache
from repo_edu.domains.profile.identity import (
    GitConnection,
    GitConnectionRegistry,
    GitServerType,
)
from repo_edu.domains.profile.models import ProfileDocument, ProfileSettings
from repo_edu.domains.profile.store import DocumentStore
from repo_edu.domains.roster.models import (
    Assignment,
    EnrollmentType,
    GitIdentityMode,
    Group,
    GroupOrigin,
    GroupSet,
    Roster,
    RosterMember,
)
from repo_edu.infrastructure.gateway.memory import InMemoryCommandGateway
from repo_edu.utils.ids import IdGenerator, IdKind


# =============================================================================
# Id Generation
# =============================================================================


class SequentialIdGenerator(IdGenerator):
    """Predictable ids: ``<kind>-<n>``."""

    def __init__(self) -> None:
        self._counter = count(1)

    def new_id(self, kind: IdKind) -> str:
        return f"{kind.value}-{next(self._counter)}"


@pytest.fixture
def id_generator() -> SequentialIdGenerator:
    """Provide a deterministic id generator."""
    return SequentialIdGenerator()


# =============================================================================
# Roster Builders
# =============================================================================


def make_member(
    member_id: str,
    name: str,
    enrollment_type: EnrollmentType = EnrollmentType.STUDENT,
    **kwargs,
) -> RosterMember:
    """Build a roster member with a derived email."""
    email = kwargs.pop("email", f"{name.lower().replace(' ', '.')}@uni.edu")
    return RosterMember(
        id=member_id,
        name=name,
        email=email,
        enrollment_type=enrollment_type,
        **kwargs,
    )


@pytest.fixture
def member_factory() -> Callable[..., RosterMember]:
    """Provide the roster member builder."""
    return make_member


@pytest.fixture
def sample_roster() -> Roster:
    """Provide a small roster with one shared local group.

    Layout:
        students: s1 Alice Smith, s2 Bob Jones, s3 Carol White
        staff: t1 Tina Teacher
        sets: gs-labs (g1, g2), gs-projects (g1, g3), gs-canvas (g-lms)
        assignment a1 on gs-labs
    """
    return Roster(
        students=[
            make_member("s1", "Alice Smith", git_username="alice"),
            make_member("s2", "Bob Jones", git_username="bob"),
            make_member("s3", "Carol White", git_username="carol"),
        ],
        staff=[make_member("t1", "Tina Teacher", EnrollmentType.TEACHER)],
        groups=[
            Group(id="g1", name="team-1", member_ids=["s1", "s2"]),
            Group(id="g2", name="team-2", member_ids=["s3"]),
            Group(id="g3", name="project-a", member_ids=["s1", "s3"]),
            Group(
                id="g-lms",
                name="canvas-team",
                member_ids=["s2"],
                origin=GroupOrigin.LMS,
                lms_group_id="9001",
            ),
        ],
        group_sets=[
            GroupSet(id="gs-labs", name="Labs", group_ids=["g1", "g2"]),
            GroupSet(id="gs-projects", name="Projects", group_ids=["g1", "g3"]),
            GroupSet(
                id="gs-canvas",
                name="Canvas teams",
                group_ids=["g-lms"],
                connection={"kind": "canvas", "course_id": "c1", "group_set_id": "77"},
            ),
        ],
        assignments=[Assignment(id="a1", name="lab-1", group_set_id="gs-labs")],
    )


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def store_settings() -> DocumentStoreSettings:
    """Provide explicit store settings independent of the environment."""
    return DocumentStoreSettings(history_limit=100, validation_debounce_ms=200)


@pytest.fixture
def git_registry() -> GitConnectionRegistry:
    """Provide a registry with a GitHub and an email-mode GitLab connection."""
    return GitConnectionRegistry(
        {
            "github": GitConnection(server_type=GitServerType.GITHUB),
            "gitlab-email": GitConnection(
                server_type=GitServerType.GITLAB,
                identity_mode=GitIdentityMode.EMAIL,
            ),
        }
    )


@pytest.fixture
def gateway(sample_roster: Roster, id_generator: SequentialIdGenerator) -> InMemoryCommandGateway:
    """Provide an in-process gateway holding the sample profile."""
    return InMemoryCommandGateway(
        profiles={"course": (ProfileSettings(), sample_roster)},
        id_generator=id_generator,
    )


@pytest.fixture
def store(
    gateway: InMemoryCommandGateway,
    git_registry: GitConnectionRegistry,
    id_generator: SequentialIdGenerator,
    store_settings: DocumentStoreSettings,
    sample_roster: Roster,
) -> Iterator[DocumentStore]:
    """Provide a store with the sample roster installed."""
    document_store = DocumentStore(
        gateway=gateway,
        identity_resolver=git_registry,
        id_generator=id_generator,
        settings=store_settings,
    )
    document_store.set_document(ProfileDocument(roster=sample_roster))
    yield document_store
    document_store.scheduler.cancel()


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Iterator[None]:
    """Clear the cached settings around each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
