"""RemoteClient backed by a Playwright sync Page.

The page is duck-typed so this module does not import playwright itself.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence

from .errors import StaleElementError

DEFAULT_SCRIPT_TIMEOUT_MS = 30000


class PlaywrightClient:
    def __init__(self, page, script_timeout_ms: int = DEFAULT_SCRIPT_TIMEOUT_MS) -> None:
        self.page = page
        self._script_timeout_ms = script_timeout_ms
        page.set_default_timeout(script_timeout_ms)

    def get_script_timeout(self) -> int:
        # Playwright exposes no getter for the default timeout, so it is tracked here.
        return self._script_timeout_ms

    def set_script_timeout(self, timeout_ms: int) -> None:
        self.page.set_default_timeout(timeout_ms)
        self._script_timeout_ms = timeout_ms

    def find_element(self, locator: str, scope: Any = None):
        root = self.page if scope is None else scope
        return root.query_selector(locator)

    def is_displayed(self, element) -> bool:
        if not element.evaluate("node => node.isConnected"):
            raise StaleElementError("element is no longer attached to the document")
        return element.is_visible()

    def evaluate_remote(self, code: str, args: Optional[Sequence[Any]] = None) -> Any:
        return self.page.evaluate(code, list(args or []))
