"""
Fire-and-forget task tracking.

The event loop only keeps weak references to tasks, so anything scheduled
with create_task() and not awaited must be held somewhere until it finishes.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine

from loguru import logger


class BackgroundTasks:
    """Holds references to in-flight background tasks."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background task {task.get_name()} crashed: {exc!r}")

    async def drain(self) -> None:
        """Wait until every task spawned so far (and any they spawn) has finished."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def __len__(self) -> int:
        return len(self._tasks)
