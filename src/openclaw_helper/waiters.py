"""Presence and visibility waits over a remote element tree.

Each wait builds a predicate against a ``RemoteClient`` and hands it to the
``Poller``. Targets are either locator strings, which are looked up again on
every check, or element references already resolved by the client, which are
re-checked as-is.
"""
from __future__ import annotations

import logging
import re
import time
from typing import Any, Callable, Mapping, Optional, Protocol, Union

from .config import PollConfig
from .errors import ConfigurationError, StaleElementError
from .poller import Poller, PollOutcome, Predicate, TimeoutBudget

logger = logging.getLogger(__name__)

# Reads the message of the currently open modal prompt, or null when none is open.
ALERT_TEXT_SCRIPT = (
    "() => {"
    " const el = document.querySelector('#modal-dialog-alert-message');"
    " return el ? el.textContent : null;"
    " }"
)

Matcher = Union[str, re.Pattern]
OnComplete = Optional[Callable[[PollOutcome], Any]]


class RemoteClient(TimeoutBudget, Protocol):
    def find_element(self, locator: str, scope: Any = None) -> Any: ...

    def is_displayed(self, element: Any) -> bool: ...

    def evaluate_remote(self, code: str, args: Any) -> Any: ...


def visibility_toggled(client: RemoteClient, target: Any, visible: bool, scope: Any = None) -> Predicate:
    """Predicate satisfied once ``target`` is displayed (``visible=True``) or gone/hidden.

    When visible the satisfied value is the element itself.
    """

    def check():
        if isinstance(target, str):
            element = client.find_element(target, scope)
            if element is None:
                return not visible
        else:
            element = target

        try:
            displayed = client.is_displayed(element)
        except StaleElementError:
            return not visible

        if visible:
            return element if displayed else False
        return not displayed

    return check


def alert_matches(client: RemoteClient, matcher: Matcher, script: str = ALERT_TEXT_SCRIPT) -> Predicate:
    if isinstance(matcher, str):
        def matches(text: str) -> bool:
            return matcher in text
    elif isinstance(matcher, re.Pattern):
        def matches(text: str) -> bool:
            return matcher.search(text) is not None
    else:
        raise ConfigurationError(
            f"alert matcher must be a string or compiled pattern, got {type(matcher).__name__}"
        )

    def check():
        text = client.evaluate_remote(script, [])
        if text is None:
            return False
        return text if matches(str(text)) else False

    return check


class Helper:
    """Wait helpers bound to one remote client."""

    def __init__(self, client: RemoteClient, config: Optional[PollConfig] = None) -> None:
        self.client = client
        self.config = config or PollConfig.from_env()
        self.poller = Poller(client)

    def wait(self, duration_ms: int) -> None:
        # Local sleep, the client's script timeout is never involved.
        time.sleep(duration_ms / 1000)

    def wait_for(
        self,
        predicate: Predicate,
        on_complete: OnComplete = None,
        interval_ms: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ):
        interval_ms = self.config.interval_ms if interval_ms is None else interval_ms
        timeout_ms = self.config.timeout_ms if timeout_ms is None else timeout_ms
        result = self.poller.poll(predicate, interval_ms, timeout_ms, on_complete)
        if on_complete is None:
            return result.value
        return result

    def _run(self, predicate: Predicate, options: Optional[Mapping[str, Any]], on_complete: OnComplete):
        config = self.config.merged(options)
        return self.wait_for(predicate, on_complete, config.interval_ms, config.timeout_ms)

    def wait_for_visibility(
        self,
        target: Any,
        visible: bool,
        options: Optional[Mapping[str, Any]] = None,
        on_complete: OnComplete = None,
        scope: Any = None,
    ):
        logger.debug("waiting for %r to become %s", target, "visible" if visible else "hidden")
        return self._run(visibility_toggled(self.client, target, visible, scope), options, on_complete)

    def wait_for_element(self, target: Any, options: Optional[Mapping[str, Any]] = None, on_complete: OnComplete = None):
        """Wait until ``target`` exists and is displayed; returns the element."""
        return self.wait_for_visibility(target, True, options, on_complete)

    def wait_for_child(
        self,
        parent: Any,
        locator: str,
        options: Optional[Mapping[str, Any]] = None,
        on_complete: OnComplete = None,
    ):
        """Like ``wait_for_element`` but only searches below ``parent``."""
        return self.wait_for_visibility(locator, True, options, on_complete, scope=parent)

    def wait_for_element_to_disappear(
        self,
        target: Any,
        options: Optional[Mapping[str, Any]] = None,
        on_complete: OnComplete = None,
    ):
        """Wait until ``target`` is removed from the tree or hidden.

        A locator string passes when the element it finds is gone or hidden.
        A resolved element passes when that very element is removed or hidden,
        even if another element matching the same locator shows up.
        """
        return self.wait_for_visibility(target, False, options, on_complete)

    def wait_for_visible(self, target: Any, options: Optional[Mapping[str, Any]] = None, on_complete: OnComplete = None):
        return self.wait_for_visibility(target, True, options, on_complete)

    def wait_for_hidden(self, target: Any, options: Optional[Mapping[str, Any]] = None, on_complete: OnComplete = None):
        return self.wait_for_visibility(target, False, options, on_complete)

    def wait_for_alert(
        self,
        matcher: Matcher,
        on_complete: OnComplete = None,
        options: Optional[Mapping[str, Any]] = None,
    ):
        """Wait for the open modal prompt's message to match ``matcher``.

        A string matches by containment, a compiled pattern by ``search``.
        """
        return self._run(alert_matches(self.client, matcher), options, on_complete)
