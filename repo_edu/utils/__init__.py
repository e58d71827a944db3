# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for repo-edu.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- ids: Identifier service for new entities
"""

from repo_edu.utils.ids import IdGenerator, IdKind, UuidIdGenerator
from repo_edu.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Ids
    "IdGenerator",
    "IdKind",
    "UuidIdGenerator",
]
