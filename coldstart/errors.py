"""Exception types raised by the cold-start registry."""
from __future__ import annotations


class ColdStartError(Exception):
    """Base exception for registry errors."""
    def __init__(self, message: str, name: str | None = None):
        super().__init__(message)
        self.message = message
        self.name = name


class ConfigurationError(ColdStartError, TypeError):
    """Definition rejected at registration time."""


class MissingFieldError(ConfigurationError):
    """A required definition field was not supplied."""
    def __init__(self, message: str, field: str, name: str | None = None):
        super().__init__(message, name)
        self.field = field


class NameAlreadyUsedError(ConfigurationError):
    """Another definition or live entry already owns the name."""
    def __init__(self, name: str):
        super().__init__(f"name `{name}` already used.", name)


class TeardownError(ColdStartError):
    """A stop routine failed.

    ``reason`` is ``"idle"`` when the idle timer triggered the teardown and
    ``"shutdown"`` when it ran as part of a global shutdown. The original
    exception is chained as ``__cause__``.
    """
    def __init__(self, name: str, reason: str, cause: BaseException):
        super().__init__(
            f"Failed to stop `{name}` ({reason}): {type(cause).__name__}: {cause}",
            name,
        )
        self.reason = reason
        self.__cause__ = cause


class ShutdownError(ColdStartError):
    """One or more teardowns failed during shutdown."""
    def __init__(self, errors: list[TeardownError]):
        names = ", ".join(e.name or "?" for e in errors)
        super().__init__(f"{len(errors)} teardown(s) failed during shutdown: {names}")
        self.errors = errors
