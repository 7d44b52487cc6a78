"""Utilities for safe background task execution.

Idle-timeout teardowns run outside of any caller's await chain, so they are
scheduled through `safe_create_task` (failures are logged instead of being
reported as "Task exception was never retrieved") and tracked in a
`TaskRegistry` so shutdown can wait for them.
"""
from __future__ import annotations

import asyncio
import logging
import traceback
from typing import Awaitable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def safe_create_task(
    coro: Awaitable[T],
    *,
    name: str | None = None,
) -> asyncio.Task[T]:
    """Create an asyncio task whose failure is logged with a full traceback.

    Must be called with a running event loop.
    """
    task = asyncio.ensure_future(coro)
    if name is not None:
        task.set_name(name)

    def handle_exception(task: asyncio.Task) -> None:
        if task.cancelled():
            logger.debug(f"Task '{task.get_name()}' was cancelled")
            return

        exc = task.exception()
        if exc is not None:
            tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            logger.error(
                f"Background task '{task.get_name()}' failed with exception:\n"
                f"Exception type: {type(exc).__name__}\n"
                f"Exception message: {exc}\n"
                f"Full traceback:\n{tb_str}"
            )

    task.add_done_callback(handle_exception)
    return task


class TaskRegistry:
    """Tracks background tasks until they finish.

    Useful for graceful shutdown: `wait_all` blocks until every task
    registered so far is done.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def register(self, task: asyncio.Task) -> asyncio.Task:
        """Track *task*; it is forgotten automatically once done."""
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_all(self, timeout: float | None = None) -> None:
        """Wait for all tracked tasks without cancelling them."""
        tasks = list(self._tasks)
        if not tasks:
            return
        done, pending = await asyncio.wait(
            tasks,
            timeout=timeout,
            return_when=asyncio.ALL_COMPLETED,
        )
        if pending:
            logger.warning(
                f"{len(pending)} tasks did not complete within {timeout}s timeout"
            )

    def get_running_tasks(self) -> list[str]:
        """Get names of currently running tasks."""
        return [task.get_name() for task in self._tasks if not task.done()]

