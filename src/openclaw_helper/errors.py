from __future__ import annotations

from typing import Any


class HelperError(Exception):
    """Base class for errors raised by openclaw_helper."""


class ConfigurationError(HelperError, ValueError):
    pass


class WaitTimeoutError(HelperError, TimeoutError):
    def __init__(self, timeout_ms: int, elapsed_ms: float, ticks: int) -> None:
        self.timeout_ms = timeout_ms
        self.elapsed_ms = elapsed_ms
        self.ticks = ticks
        super().__init__(
            f"condition not met within {timeout_ms}ms ({ticks} checks, {elapsed_ms:.0f}ms elapsed)"
        )


class PredicateError(HelperError):
    def __init__(self, cause: Any) -> None:
        self.cause = cause
        super().__init__(f"predicate failed: {cause}")


class StaleElementError(HelperError):
    """Raised by a client when a resolved element is no longer in the tree."""
