from __future__ import annotations

import logging

from coldstart.events import LifecycleEvent, emit, log_sink


def test_log_sink_writes_event_and_name(caplog):
    with caplog.at_level(logging.DEBUG, logger="coldstart"):
        log_sink(LifecycleEvent.REFRESH, "db")
    assert "refresh:db" in caplog.text


def test_emit_swallows_sink_failure(caplog):
    def sink(event, name):
        raise RuntimeError("sink down")

    with caplog.at_level(logging.WARNING, logger="coldstart"):
        emit(sink, LifecycleEvent.START, "db")

    assert "Lifecycle sink failed on start:db" in caplog.text


def test_emit_without_sink_is_noop():
    emit(None, LifecycleEvent.STOP, "db")


def test_event_values():
    assert [e.value for e in LifecycleEvent] == ["start", "refresh", "stop", "shutdown"]
