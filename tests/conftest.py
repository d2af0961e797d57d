from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

import pytest

from openclaw_helper.config import PollConfig
from openclaw_helper.errors import StaleElementError
from openclaw_helper.waiters import Helper


class FakeElement:
    def __init__(self, element_id: str, displayed: bool = True, parent: Optional["FakeElement"] = None) -> None:
        self.element_id = element_id
        self.displayed = displayed
        self.parent = parent
        self.attached = True

    def __repr__(self) -> str:
        return f"FakeElement({self.element_id!r})"


class FakeClient:
    """In-memory element tree whose state can change on a timer."""

    def __init__(self, script_timeout_ms: int = 2000) -> None:
        self.script_timeout_ms = script_timeout_ms
        self.timeout_history: List[int] = []
        self.elements: Dict[str, FakeElement] = {}
        self.alert_text: Optional[str] = None
        self.scripts: List[str] = []
        self._timers: List[threading.Timer] = []

    def get_script_timeout(self) -> int:
        return self.script_timeout_ms

    def set_script_timeout(self, timeout_ms: int) -> None:
        self.timeout_history.append(timeout_ms)
        self.script_timeout_ms = timeout_ms

    def find_element(self, locator: str, scope: Any = None):
        if not locator.startswith("#"):
            raise ValueError(f"malformed locator: {locator!r}")
        element = self.elements.get(locator[1:])
        if element is None:
            return None
        if scope is not None and element.parent is not scope:
            return None
        return element

    def is_displayed(self, element: FakeElement) -> bool:
        if not element.attached:
            raise StaleElementError(f"{element!r} is detached")
        return element.displayed

    def evaluate_remote(self, code: str, args: Any) -> Any:
        self.scripts.append(code)
        return self.alert_text

    def add(self, element_id: str, displayed: bool = True, parent: Optional[FakeElement] = None) -> FakeElement:
        element = FakeElement(element_id, displayed=displayed, parent=parent)
        self.elements[element_id] = element
        return element

    def remove(self, element_id: str) -> None:
        element = self.elements.pop(element_id)
        element.attached = False

    def later(self, delay_ms: int, action, *args) -> None:
        timer = threading.Timer(delay_ms / 1000, action, args)
        timer.daemon = True
        self._timers.append(timer)
        timer.start()

    def close(self) -> None:
        for timer in self._timers:
            timer.cancel()


@pytest.fixture
def client():
    fake = FakeClient()
    yield fake
    fake.close()


@pytest.fixture
def helper(client: FakeClient) -> Helper:
    return Helper(client, PollConfig(interval_ms=50))
