"""OpenClaw helper: polling waits for remote element trees."""

from .config import PollConfig
from .errors import (
    ConfigurationError,
    HelperError,
    PredicateError,
    StaleElementError,
    WaitTimeoutError,
)
from .poller import Failed, OutcomeStatus, PollOutcome, Poller, poll, raised_script_timeout
from .waiters import Helper, alert_matches, visibility_toggled

__all__ = [
    "ConfigurationError",
    "Failed",
    "Helper",
    "HelperError",
    "OutcomeStatus",
    "PollConfig",
    "PollOutcome",
    "Poller",
    "PredicateError",
    "StaleElementError",
    "WaitTimeoutError",
    "alert_matches",
    "poll",
    "raised_script_timeout",
    "visibility_toggled",
]
