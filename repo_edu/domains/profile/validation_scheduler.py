# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Debounced dispatch of roster and assignment validation.

Each validation kind owns one timer slot. A trigger cancels whatever is
armed in that slot and arms a new timer, so a burst of mutations results
in a single validation run once the quiet period has elapsed.

Triggers that arrive without a running event loop (for example from
synchronous code or tests) are remembered as pending and run on the next
flush().
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ValidationCallback = Callable[[], Awaitable[None]]


@dataclass
class _DebounceSlot:
    """Single-slot debounce timer for one validation kind."""

    name: str
    callback: ValidationCallback
    task: asyncio.Task | None = None
    pending: bool = False

    def arm(self, delay_seconds: float) -> None:
        self.cancel()
        self.pending = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self.task = loop.create_task(self._fire_after(delay_seconds))

    def cancel(self) -> None:
        task = self.task
        if task is not None and not task.done() and not task.get_loop().is_closed():
            task.cancel()
        self.task = None
        self.pending = False

    async def run_now(self) -> None:
        if not self.pending:
            return
        self.cancel()
        await self._run()

    async def _fire_after(self, delay_seconds: float) -> None:
        await asyncio.sleep(delay_seconds)
        self.task = None
        await self._run()

    async def _run(self) -> None:
        self.pending = False
        try:
            await self.callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("%s validation failed", self.name, exc_info=True)


class ValidationScheduler:
    """Debounces roster and assignment validation requests.

    Attributes:
        delay_seconds: Quiet period before a triggered validation runs.
    """

    def __init__(
        self,
        run_roster: ValidationCallback,
        run_assignments: ValidationCallback,
        delay_seconds: float = 0.2,
    ) -> None:
        self.delay_seconds = delay_seconds
        self._roster = _DebounceSlot("Roster", run_roster)
        self._assignments = _DebounceSlot("Assignment", run_assignments)

    def schedule_roster(self) -> None:
        self._roster.arm(self.delay_seconds)

    def schedule_assignments(self) -> None:
        self._assignments.arm(self.delay_seconds)

    def schedule_all(self) -> None:
        self.schedule_roster()
        self.schedule_assignments()

    @property
    def roster_pending(self) -> bool:
        return self._roster.pending

    @property
    def assignments_pending(self) -> bool:
        return self._assignments.pending

    async def flush(self) -> None:
        """Run pending or armed validations immediately."""
        await self._roster.run_now()
        await self._assignments.run_now()

    def cancel(self) -> None:
        """Drop pending and armed validations."""
        self._roster.cancel()
        self._assignments.cancel()
