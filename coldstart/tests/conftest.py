from __future__ import annotations

import pytest

from coldstart.config import settings
from coldstart.registry import Registry


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    """Pin timeouts so tests don't depend on COLDSTART_* in the environment."""
    monkeypatch.setattr(settings, "start_timeout", None)
    monkeypatch.setattr(settings, "stop_timeout", None)
    monkeypatch.setattr(settings, "metrics_enabled", True)
    yield


class EventRecorder:
    """Sink that records (event, name) pairs."""

    def __init__(self):
        self.events: list[tuple[str, str]] = []

    def __call__(self, event, name):
        self.events.append((event.value, name))


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def teardown_errors() -> list:
    return []


@pytest.fixture
def registry(recorder, teardown_errors) -> Registry:
    return Registry(sink=recorder, on_error=teardown_errors.append)
