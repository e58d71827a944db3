# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Command gateway port and the in-process implementation."""

from repo_edu.infrastructure.gateway.memory import InMemoryCommandGateway
from repo_edu.infrastructure.gateway.ports import CommandGateway, GatewayError, GatewayResult

__all__ = [
    "CommandGateway",
    "GatewayError",
    "GatewayResult",
    "InMemoryCommandGateway",
]
