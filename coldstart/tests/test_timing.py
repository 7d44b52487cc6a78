from __future__ import annotations

import logging

import pytest

from coldstart.timing import AsyncTimedOperation


class FakeHistogram:
    def __init__(self):
        self.observed = []

    def labels(self, **labels):
        self._labels = labels
        return self

    def observe(self, value):
        self.observed.append((self._labels, value))


@pytest.mark.asyncio
async def test_records_success_and_logs_structured_event(caplog):
    histogram = FakeHistogram()

    with caplog.at_level(logging.DEBUG, logger="coldstart.timing"):
        async with AsyncTimedOperation(
            histogram=histogram,
            labels={"name": "db", "status": "auto"},
            log_event="coldstart_start",
        ) as op:
            pass

    assert op.success is True
    assert histogram.observed[0][0] == {"name": "db", "status": "success"}

    record = next(r for r in caplog.records if r.getMessage() == "coldstart_start completed")
    assert record.event == "coldstart_start"
    assert record.resource_name == "db"
    assert record.success is True


@pytest.mark.asyncio
async def test_records_error_and_reraises(caplog):
    histogram = FakeHistogram()

    with caplog.at_level(logging.DEBUG, logger="coldstart.timing"):
        with pytest.raises(RuntimeError):
            async with AsyncTimedOperation(
                histogram=histogram,
                labels={"name": "db", "status": "auto"},
                log_event="coldstart_stop",
                log_extras={"reason": "idle"},
            ):
                raise RuntimeError("stop failed")

    assert histogram.observed[0][0]["status"] == "error"
    record = next(r for r in caplog.records if r.getMessage() == "coldstart_stop completed")
    assert record.reason == "idle"
    assert record.error == "stop failed"


@pytest.mark.asyncio
async def test_broken_histogram_does_not_break_operation(caplog):
    class Broken:
        def labels(self, **labels):
            raise ValueError("bad labels")

    with caplog.at_level(logging.WARNING, logger="coldstart.timing"):
        async with AsyncTimedOperation(histogram=Broken(), labels={"name": "db"}):
            result = "done"

    assert result == "done"
    assert "Failed to record metric" in caplog.text
