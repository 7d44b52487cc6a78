"""Prometheus metrics for cold-start registries.

Tracks per-name initialization, refresh and teardown activity. Metrics live
in the default prometheus_client registry so every Registry in the process
reports into the same series, labelled by definition name.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from prometheus_client import Counter, Gauge, Histogram

logger = logging.getLogger(__name__)


class DummyMetric:
    """No-op metric used when instrumentation is disabled."""
    def labels(self, *args, **kwargs):
        return self
    def inc(self, amount=1):
        pass
    def dec(self, amount=1):
        pass
    def observe(self, value):
        pass


starts_total = Counter(
    "coldstart_starts_total",
    "Total successful instance initializations",
    ["name"],
)

start_failures_total = Counter(
    "coldstart_start_failures_total",
    "Total failed instance initializations",
    ["name"],
)

refreshes_total = Counter(
    "coldstart_refreshes_total",
    "Total cache hits that refreshed an idle timer",
    ["name"],
)

stops_total = Counter(
    "coldstart_stops_total",
    "Total instance teardowns",
    ["name", "reason"],
)

stop_failures_total = Counter(
    "coldstart_stop_failures_total",
    "Total failed instance teardowns",
    ["name", "reason"],
)

active_entries = Gauge(
    "coldstart_active_entries",
    "Live instances held by registries",
    ["name"],
)

start_duration = Histogram(
    "coldstart_start_seconds",
    "Duration of instance initialization",
    ["name", "status"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, float("inf")),
)

stop_duration = Histogram(
    "coldstart_stop_seconds",
    "Duration of instance teardown",
    ["name", "status"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, float("inf")),
)


@dataclass(frozen=True)
class LifecycleMetrics:
    """The set of metrics a registry reports into."""

    starts: Any
    start_failures: Any
    refreshes: Any
    stops: Any
    stop_failures: Any
    active: Any
    start_seconds: Any
    stop_seconds: Any


_ENABLED = LifecycleMetrics(
    starts=starts_total,
    start_failures=start_failures_total,
    refreshes=refreshes_total,
    stops=stops_total,
    stop_failures=stop_failures_total,
    active=active_entries,
    start_seconds=start_duration,
    stop_seconds=stop_duration,
)

_DISABLED = LifecycleMetrics(*(DummyMetric() for _ in range(8)))


def lifecycle_metrics(enabled: bool = True) -> LifecycleMetrics:
    """Return the live metric set, or no-op stand-ins when disabled."""
    return _ENABLED if enabled else _DISABLED


