from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

import jsonschema

from .errors import ConfigurationError

DEFAULT_INTERVAL_MS = 100
# Used only when a poller has no client to inherit an ambient timeout from.
DEFAULT_TIMEOUT_MS = 5000

WAIT_OPTIONS_SCHEMA: Mapping[str, Any] = {
    "type": "object",
    "properties": {
        "timeout": {"type": "integer", "minimum": 0},
        "interval": {"type": "integer", "exclusiveMinimum": 0},
    },
}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _require_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {type(value).__name__}")


def check_poll_args(interval_ms: Any, timeout_ms: Any) -> None:
    _require_int("interval_ms", interval_ms)
    _require_int("timeout_ms", timeout_ms)
    if interval_ms <= 0:
        raise ConfigurationError(f"interval_ms must be > 0, got {interval_ms}")
    if timeout_ms < 0:
        raise ConfigurationError(f"timeout_ms must be >= 0, got {timeout_ms}")


@dataclass(frozen=True)
class PollConfig:
    """Polling cadence and budget.

    A ``timeout_ms`` of 0 means "inherit the client's script timeout".
    """

    interval_ms: int = DEFAULT_INTERVAL_MS
    timeout_ms: int = 0

    def __post_init__(self) -> None:
        check_poll_args(self.interval_ms, self.timeout_ms)

    @classmethod
    def from_env(cls) -> "PollConfig":
        return cls(
            interval_ms=_env_int("OPENCLAW_HELPER_INTERVAL_MS", DEFAULT_INTERVAL_MS),
            timeout_ms=_env_int("OPENCLAW_HELPER_TIMEOUT_MS", 0),
        )

    def merged(self, options: Optional[Mapping[str, Any]]) -> "PollConfig":
        """Apply per-call wait options (``timeout``, ``interval``) on top of this config."""
        if not options:
            return self
        try:
            instance = dict(options) if isinstance(options, Mapping) else options
            jsonschema.validate(instance, WAIT_OPTIONS_SCHEMA)
        except jsonschema.ValidationError as exc:
            raise ConfigurationError(f"invalid wait options: {exc.message}") from exc

        changes = {}
        if "timeout" in options:
            changes["timeout_ms"] = options["timeout"]
        if "interval" in options:
            changes["interval_ms"] = options["interval"]
        return replace(self, **changes)
