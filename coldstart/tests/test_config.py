from __future__ import annotations

from coldstart.config import Settings


def test_defaults(monkeypatch):
    for var in ("COLDSTART_LOG_LEVEL", "COLDSTART_STOP_TIMEOUT", "COLDSTART_START_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)

    s = Settings()
    assert s.log_level == "INFO"
    assert s.log_format == "json"
    assert s.start_timeout is None
    assert s.stop_timeout is None
    assert s.metrics_enabled is True


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("COLDSTART_STOP_TIMEOUT", "2.5")
    monkeypatch.setenv("COLDSTART_START_TIMEOUT", "10")
    monkeypatch.setenv("COLDSTART_METRICS_ENABLED", "false")

    s = Settings()
    assert s.stop_timeout == 2.5
    assert s.start_timeout == 10.0
    assert s.metrics_enabled is False


def test_registry_reads_settings_defaults(monkeypatch):
    from coldstart.config import settings
    from coldstart.registry import Registry

    monkeypatch.setattr(settings, "stop_timeout", 1.5)
    monkeypatch.setattr(settings, "start_timeout", 3.0)

    registry = Registry()
    assert registry._stop_timeout == 1.5
    assert registry._start_timeout == 3.0

    explicit = Registry(stop_timeout=None, start_timeout=None)
    assert explicit._stop_timeout is None
    assert explicit._start_timeout is None
