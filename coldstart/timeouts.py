"""Timeout policy for caller-supplied start and stop routines.

Wrapping coroutines with `with_timeout()` provides uniform logging when a
factory or teardown routine runs past its budget.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any

logger = logging.getLogger(__name__)


async def maybe_await(value: Any) -> Any:
    """Await *value* if it is awaitable, otherwise return it unchanged.

    Lets callers pass plain functions as well as coroutine functions for
    ``start`` and ``stop``.
    """
    if inspect.isawaitable(value):
        return await value
    return value


async def with_timeout(coro, timeout: float | None, description: str = "operation"):
    """Wrap any coroutine with a timeout and descriptive warning on failure.

    Args:
        coro: Awaitable coroutine
        timeout: Timeout in seconds, or None to wait indefinitely
        description: Human-readable description for log messages

    Returns:
        Result of the coroutine

    Raises:
        asyncio.TimeoutError: If the operation exceeds the timeout
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Timeout after {timeout}s: {description}")
        raise
