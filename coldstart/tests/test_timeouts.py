from __future__ import annotations

import asyncio

import pytest

from coldstart.timeouts import maybe_await, with_timeout


@pytest.mark.asyncio
async def test_with_timeout_logs_warning_on_timeout(monkeypatch):
    warnings = []

    class Logger:
        def warning(self, msg):
            warnings.append(msg)

    monkeypatch.setattr("coldstart.timeouts.logger", Logger())

    with pytest.raises(asyncio.TimeoutError):
        await with_timeout(asyncio.sleep(0.02), timeout=0.001, description="stop `db`")

    assert warnings
    assert "stop `db`" in warnings[0]


@pytest.mark.asyncio
async def test_with_timeout_none_waits_for_result():
    async def work():
        await asyncio.sleep(0.01)
        return 42

    assert await with_timeout(work(), timeout=None) == 42


@pytest.mark.asyncio
async def test_maybe_await_accepts_plain_values_and_awaitables():
    async def value():
        return "async"

    assert await maybe_await("plain") == "plain"
    assert await maybe_await(value()) == "async"
    assert await maybe_await(None) is None
