"""Lazy-initialization registry with idle-timeout eviction."""

from coldstart.errors import (
    ColdStartError,
    ConfigurationError,
    MissingFieldError,
    NameAlreadyUsedError,
    ShutdownError,
    TeardownError,
)
from coldstart.events import LifecycleEvent
from coldstart.registry import (
    AcquireHandle,
    Definition,
    Entry,
    Registry,
    create_cold_start,
)

__version__ = "0.1.0"

__all__ = [
    # Registry
    "Registry",
    "AcquireHandle",
    "Definition",
    "Entry",
    "create_cold_start",
    # Events
    "LifecycleEvent",
    # Errors
    "ColdStartError",
    "ConfigurationError",
    "MissingFieldError",
    "NameAlreadyUsedError",
    "TeardownError",
    "ShutdownError",
]
