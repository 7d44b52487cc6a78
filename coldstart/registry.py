"""Lazy-initialization registry with idle-timeout eviction.

A definition pairs a named factory (``start``) with a teardown routine
(``stop``) and an idle ``duration``. Registering it returns an acquire
handle; nothing is created until the handle is first awaited.

Per-name lifecycle:
  absent -> initializing -> active (idle timer armed)
         -> active (timer refreshed on every acquire)
         -> tearing down -> absent

  - Concurrent first acquires share one in-flight initialization.
  - The idle timer firing removes the entry synchronously; that is the
    commit point. Any acquire after it creates a fresh instance while the
    old one is stopped in a tracked background task.
  - shutdown_all() cancels every timer, removes every entry and stops all
    instances concurrently.

Each successfully created instance is stopped exactly once, by the idle
timer or by shutdown, never both.
"""
from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable

from coldstart.async_tasks import TaskRegistry, safe_create_task
from coldstart.config import settings
from coldstart.errors import (
    ConfigurationError,
    MissingFieldError,
    NameAlreadyUsedError,
    ShutdownError,
    TeardownError,
)
from coldstart.events import EventSink, LifecycleEvent, emit, log_sink
from coldstart.metrics import lifecycle_metrics
from coldstart.timeouts import maybe_await, with_timeout
from coldstart.timing import AsyncTimedOperation

logger = logging.getLogger(__name__)

# Marks constructor arguments that fall back to settings (None is meaningful).
_FROM_SETTINGS: Any = object()


@dataclass(frozen=True)
class Definition:
    """Caller-supplied configuration for one named lazy resource."""

    name: str | None = None
    start: Callable[[Any], Any] | None = None
    stop: Callable[[Any], Any] | None = None
    duration: float | timedelta | None = None


@dataclass
class Entry:
    """A live instance, its bound teardown and its idle timer."""

    instance: Any
    stop: Callable[[], Any]
    timer: asyncio.TimerHandle | None = None


def _duration_seconds(duration: Any, name: str) -> float:
    if isinstance(duration, timedelta):
        seconds = duration.total_seconds()
    elif isinstance(duration, (int, float)) and not isinstance(duration, bool):
        seconds = float(duration)
    else:
        raise ConfigurationError(
            f"`duration` for `{name}` must be seconds or a timedelta, got {type(duration).__name__}.",
            name,
        )
    if seconds < 0:
        raise ConfigurationError(f"`duration` for `{name}` must not be negative.", name)
    return seconds


class AcquireHandle:
    """Awaitable accessor returned by `Registry.register`.

    ``await handle(opts)`` returns the live instance for the definition's
    name, creating it with ``start(opts)`` when absent. ``opts`` is ignored
    when an instance already exists.
    """

    def __init__(self, registry: Registry, definition: Definition, duration: float):
        self._registry = registry
        self.definition = definition
        self.duration = duration

    @property
    def name(self) -> str:
        return self.definition.name

    async def __call__(self, opts: Any = None) -> Any:
        return await self._registry._acquire(self, opts)

    acquire = __call__

    def __repr__(self) -> str:
        return f"<AcquireHandle name={self.name!r} duration={self.duration}s>"


class Registry:
    """Owns the name -> Entry store for one isolation scope.

    Args:
        store: Mapping used to hold live entries (a new dict by default)
        sink: Diagnostic callback receiving lifecycle events; None disables
        on_error: Callback receiving every `TeardownError`
        start_timeout: Seconds allowed for ``start``; defaults to settings
        stop_timeout: Seconds allowed for ``stop``; defaults to settings
        metrics_enabled: Report to Prometheus; defaults to settings
        shutdown: Replacement shutdown strategy, awaited with the registry

    Not thread-safe: use a registry from a single event loop.
    """

    def __init__(
        self,
        store: MutableMapping[str, Entry] | None = None,
        *,
        sink: EventSink | None = log_sink,
        on_error: Callable[[TeardownError], None] | None = None,
        start_timeout: float | None = _FROM_SETTINGS,
        stop_timeout: float | None = _FROM_SETTINGS,
        metrics_enabled: bool | None = None,
        shutdown: Callable[[Registry], Awaitable[None]] | None = None,
    ):
        self._store: MutableMapping[str, Entry] = store if store is not None else {}
        self._definitions: dict[str, Definition] = {}
        self._pending: dict[str, asyncio.Task] = {}
        self._teardowns = TaskRegistry()
        self._sink = sink
        self._on_error = on_error
        self._start_timeout = settings.start_timeout if start_timeout is _FROM_SETTINGS else start_timeout
        self._stop_timeout = settings.stop_timeout if stop_timeout is _FROM_SETTINGS else stop_timeout
        if metrics_enabled is None:
            metrics_enabled = settings.metrics_enabled
        self._metrics = lifecycle_metrics(metrics_enabled)
        self._shutdown_strategy = shutdown

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        definition: Definition | None = None,
        *,
        start: Callable[[Any], Any] | None = None,
        stop: Callable[[Any], Any] | None = None,
        name: str | None = None,
        duration: float | timedelta | None = None,
    ) -> AcquireHandle:
        """Register a definition and return its acquire handle.

        Fields are checked in a fixed order (start, stop, name, duration)
        and the first missing one raises `MissingFieldError`. A name already
        owned by another definition or live entry raises
        `NameAlreadyUsedError`. No resource is created here. Passing a
        `Definition` together with keyword fields is a `ConfigurationError`.
        """
        if definition is None:
            definition = Definition(name=name, start=start, stop=stop, duration=duration)
        elif any(value is not None for value in (start, stop, name, duration)):
            raise ConfigurationError(
                "Pass either a `Definition` or keyword fields, not both.",
                definition.name,
            )

        if definition.start is None:
            raise MissingFieldError("Need to define `start` method.", "start", definition.name)
        if definition.stop is None:
            raise MissingFieldError("Need to define `stop` method.", "stop", definition.name)
        if definition.name is None:
            raise MissingFieldError("Need to define a `name`.", "name")
        if definition.duration is None:
            raise MissingFieldError("Need to define a `duration`.", "duration", definition.name)

        name = definition.name
        for field_name in ("start", "stop"):
            if not callable(getattr(definition, field_name)):
                raise ConfigurationError(f"`{field_name}` for `{name}` must be callable.", name)
        seconds = _duration_seconds(definition.duration, name)

        if name in self._definitions or name in self._store:
            raise NameAlreadyUsedError(name)

        self._definitions[name] = definition
        logger.debug(f"Registered definition {name} (idle timeout {seconds}s)")
        return AcquireHandle(self, definition, seconds)

    define = register
    __call__ = register

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------

    async def _acquire(self, handle: AcquireHandle, opts: Any) -> Any:
        name = handle.name
        entry = self._store.get(name)
        if entry is not None:
            self._refresh(name, entry, handle.duration)
            return entry.instance

        pending = self._pending.get(name)
        if pending is None:
            # safe_create_task logs a failure even when every waiter was cancelled.
            pending = safe_create_task(
                self._initialize(handle, opts), name=f"coldstart-start:{name}"
            )
            self._pending[name] = pending
        # Cancelling one caller must not abort an initialization others await.
        return await asyncio.shield(pending)

    async def _initialize(self, handle: AcquireHandle, opts: Any) -> Any:
        name = handle.name
        definition = handle.definition
        emit(self._sink, LifecycleEvent.START, name)
        try:
            async with AsyncTimedOperation(
                histogram=self._metrics.start_seconds,
                labels={"name": name, "status": "auto"},
                log_event="coldstart_start",
            ):
                instance = await with_timeout(
                    maybe_await(definition.start(opts)),
                    self._start_timeout,
                    f"start `{name}`",
                )
        except Exception:
            self._metrics.start_failures.labels(name=name).inc()
            raise
        finally:
            if self._pending.get(name) is asyncio.current_task():
                del self._pending[name]

        entry = Entry(instance=instance, stop=functools.partial(definition.stop, instance))
        entry.timer = self._arm(name, entry, handle.duration)
        self._store[name] = entry
        self._metrics.starts.labels(name=name).inc()
        self._metrics.active.labels(name=name).inc()
        return instance

    def _arm(self, name: str, entry: Entry, duration: float) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(duration, self._expire, name, entry)

    def _refresh(self, name: str, entry: Entry, duration: float) -> None:
        emit(self._sink, LifecycleEvent.REFRESH, name)
        if entry.timer is not None:
            entry.timer.cancel()
        entry.timer = self._arm(name, entry, duration)
        self._metrics.refreshes.labels(name=name).inc()

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def _expire(self, name: str, entry: Entry) -> None:
        """Idle timer callback: detach the entry, then stop it in the background."""
        if self._store.get(name) is not entry:
            return
        del self._store[name]
        entry.timer = None
        self._metrics.active.labels(name=name).dec()
        self._teardowns.register(
            safe_create_task(self._teardown(name, entry, "idle"), name=f"coldstart-stop:{name}")
        )

    async def _teardown(self, name: str, entry: Entry, reason: str) -> TeardownError | None:
        event = LifecycleEvent.STOP if reason == "idle" else LifecycleEvent.SHUTDOWN
        emit(self._sink, event, name)
        try:
            async with AsyncTimedOperation(
                histogram=self._metrics.stop_seconds,
                labels={"name": name, "status": "auto"},
                log_event="coldstart_stop",
                log_extras={"reason": reason},
            ):
                await with_timeout(
                    maybe_await(entry.stop()),
                    self._stop_timeout,
                    f"stop `{name}`",
                )
        except Exception as e:
            error = TeardownError(name, reason, e)
            self._metrics.stop_failures.labels(name=name, reason=reason).inc()
            self._report(error)
            return error
        self._metrics.stops.labels(name=name, reason=reason).inc()
        return None

    def _report(self, error: TeardownError) -> None:
        logger.error(error.message, exc_info=error.__cause__)
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception as e:
            logger.warning(f"Teardown error handler failed for {error.name}: {e}")

    async def shutdown_entries(self) -> None:
        """Stop every live entry concurrently and wait for idle teardowns.

        Entries are detached from the store and their timers cancelled
        before any ``stop`` runs. Failures are collected and raised as one
        `ShutdownError` once every teardown has finished.
        """
        detached: list[tuple[str, Entry]] = []
        for name, entry in list(self._store.items()):
            if entry.timer is not None:
                entry.timer.cancel()
                entry.timer = None
            del self._store[name]
            self._metrics.active.labels(name=name).dec()
            detached.append((name, entry))

        if detached:
            logger.info(f"Shutting down {len(detached)} live instance(s)")
        running = self._teardowns.get_running_tasks()
        if running:
            logger.info(f"Waiting for idle teardowns in flight: {', '.join(sorted(running))}")
        results = await asyncio.gather(
            *(self._teardown(name, entry, "shutdown") for name, entry in detached)
        )
        await self._teardowns.wait_all()

        errors = [error for error in results if error is not None]
        if errors:
            raise ShutdownError(errors)

    async def shutdown_all(self) -> None:
        """Tear down all live instances; names registered stay usable."""
        if self._shutdown_strategy is not None:
            await maybe_await(self._shutdown_strategy(self))
            return
        await self.shutdown_entries()

    shutdown = shutdown_all

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def store(self) -> MutableMapping[str, Entry]:
        """The live name -> Entry mapping."""
        return self._store

    def names(self) -> list[str]:
        """Names of all registered definitions."""
        return list(self._definitions)

    def is_active(self, name: str) -> bool:
        return name in self._store

    def is_initializing(self, name: str) -> bool:
        return name in self._pending

    def __contains__(self, name: object) -> bool:
        return name in self._store

    def __len__(self) -> int:
        return len(self._store)


def create_cold_start(
    store: MutableMapping[str, Entry] | None = None,
    shutdown: Callable[[Registry], Awaitable[None]] | None = None,
    **kwargs: Any,
) -> Registry:
    """Create an independent registry.

    Usage:
        cold_start = create_cold_start()
        get_db = cold_start(name="db", start=connect, stop=close, duration=60)
        db = await get_db()
        ...
        await cold_start.shutdown()
    """
    return Registry(store, shutdown=shutdown, **kwargs)
