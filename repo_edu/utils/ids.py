# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Identifier service for new roster entities.

Ids are opaque strings. The default generator uses UUID4, which also
gives the group naming rules hex characters for collision suffixes.
"""

from abc import ABC, abstractmethod
from enum import Enum
from uuid import uuid4


class IdKind(str, Enum):
    """Entity kinds that receive generated ids."""

    MEMBER = "member"
    GROUP = "group"
    GROUP_SET = "group_set"
    ASSIGNMENT = "assignment"


class IdGenerator(ABC):
    """Generates unique, collision-resistant ids within a session."""

    @abstractmethod
    def new_id(self, kind: IdKind) -> str:
        """Return a new id for an entity of the given kind."""


class UuidIdGenerator(IdGenerator):
    """UUID4-backed id generator."""

    def new_id(self, kind: IdKind) -> str:
        return str(uuid4())
