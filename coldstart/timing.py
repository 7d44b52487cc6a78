"""Timing utilities for lifecycle operations.

Records the duration of ``start`` and ``stop`` calls to a Prometheus
histogram and a structured log record. Exception-safe: metric or logging
failures never break the wrapped operation.

Usage:
    from coldstart.timing import AsyncTimedOperation
    from coldstart.metrics import start_duration

    async with AsyncTimedOperation(
        histogram=start_duration,
        labels={"name": "db", "status": "auto"},
        log_event="coldstart_start",
    ):
        instance = await start(opts)
"""
from __future__ import annotations

import logging
import time

logger = logging.getLogger(__name__)

# Attributes LogRecord already owns; passing them via ``extra`` raises KeyError.
_RESERVED_LOG_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


class AsyncTimedOperation:
    """Async context manager for timing operations.

    A ``status`` label of ``"auto"`` is resolved to ``"success"`` or
    ``"error"`` depending on whether the block raised. Label keys that
    collide with LogRecord attributes (such as ``name``) are logged under
    a ``resource_`` prefix.
    """

    def __init__(
        self,
        *,
        histogram=None,
        labels: dict[str, str] | None = None,
        log_event: str = "timed_operation",
        log_extras: dict | None = None,
        log_level: int = logging.DEBUG,
    ):
        self.histogram = histogram
        self.labels = labels or {}
        self.log_event = log_event
        self.log_extras = log_extras or {}
        self.log_level = log_level
        self.duration_ms: int = 0
        self.success: bool = True
        self._start: float = 0.0

    async def __aenter__(self):
        self._start = time.monotonic()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.monotonic() - self._start
        self.duration_ms = int(elapsed * 1000)
        self.success = exc_type is None

        try:
            if self.histogram is not None:
                metric_labels = dict(self.labels)
                if metric_labels.get("status") in ("auto", "__auto__"):
                    metric_labels["status"] = "success" if self.success else "error"
                self.histogram.labels(**metric_labels).observe(elapsed)
        except Exception as e:
            logger.warning("Failed to record metric: %s", e)

        try:
            extra = {
                "event": self.log_event,
                "duration_ms": self.duration_ms,
                "success": self.success,
            }
            for key, value in {**self.labels, **self.log_extras}.items():
                if key in _RESERVED_LOG_KEYS:
                    key = f"resource_{key}"
                extra[key] = value
            extra.pop("status", None)
            if exc_type is not None:
                extra["error"] = str(exc_val)
            logger.log(self.log_level, "%s completed", self.log_event, extra=extra)
        except Exception as e:
            logger.warning("Failed to emit timing log: %s", e)

        return False  # Don't suppress exceptions
