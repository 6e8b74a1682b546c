"""Lifecycle tracking for the background tasks that run controller operations."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


class TaskManager:
    """Spawn and track asyncio tasks so shutdown can cancel what is still running."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(
        self, coro: Coroutine[Any, Any, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Schedule ``coro`` and keep a reference until it finishes.

        Unhandled failures are logged when the task completes.
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error(
                "task.failed",
                extra={"event": "task.failed", "task": task.get_name()},
                exc_info=exc,
            )

    @property
    def active_count(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    async def cancel_all(self) -> None:
        """Cancel every tracked task and await them all."""
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        for task in pending:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()

    async def await_all(self) -> None:
        """Await all tracked tasks without cancelling them."""
        for task in list(self._tasks):
            if not task.done():
                try:
                    await task
                except asyncio.CancelledError:
                    pass
