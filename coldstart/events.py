"""Lifecycle events emitted to the registry's diagnostic sink."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

logger = logging.getLogger("coldstart")


class LifecycleEvent(str, Enum):
    """Lifecycle transitions observable through a sink."""

    START = "start"
    REFRESH = "refresh"
    STOP = "stop"
    SHUTDOWN = "shutdown"


EventSink = Callable[[LifecycleEvent, str], None]


def log_sink(event: LifecycleEvent, name: str) -> None:
    """Default sink: one debug line per transition, e.g. ``refresh:db``."""
    logger.debug(f"{event.value}:{name}")


def emit(sink: EventSink | None, event: LifecycleEvent, name: str) -> None:
    """Deliver *event* to *sink*; sink failures are logged and never propagate."""
    if sink is None:
        return
    try:
        sink(event, name)
    except Exception as e:
        logger.warning("Lifecycle sink failed on %s:%s: %s", event.value, name, e)
