from unittest import mock

import pytest

from openclaw_helper.errors import StaleElementError, WaitTimeoutError
from openclaw_helper.playwright_client import DEFAULT_SCRIPT_TIMEOUT_MS, PlaywrightClient
from openclaw_helper.waiters import Helper


def _handle(connected: bool = True, visible: bool = True) -> mock.Mock:
    handle = mock.Mock()
    handle.evaluate.return_value = connected
    handle.is_visible.return_value = visible
    return handle


def test_script_timeout_is_pushed_to_page() -> None:
    page = mock.Mock()
    client = PlaywrightClient(page)
    assert client.get_script_timeout() == DEFAULT_SCRIPT_TIMEOUT_MS
    client.set_script_timeout(45000)
    assert client.get_script_timeout() == 45000
    page.set_default_timeout.assert_called_with(45000)


def test_find_element_uses_page_or_scope() -> None:
    page = mock.Mock()
    scope = mock.Mock()
    client = PlaywrightClient(page)

    client.find_element("#menu")
    page.query_selector.assert_called_once_with("#menu")

    client.find_element("#item", scope)
    scope.query_selector.assert_called_once_with("#item")


def test_detached_element_is_stale() -> None:
    client = PlaywrightClient(mock.Mock())
    with pytest.raises(StaleElementError):
        client.is_displayed(_handle(connected=False))
    assert client.is_displayed(_handle(visible=False)) is False


def test_evaluate_remote_passes_args_as_list() -> None:
    page = mock.Mock()
    page.evaluate.return_value = "hello"
    client = PlaywrightClient(page)
    assert client.evaluate_remote("(args) => args[0]", ("hello",)) == "hello"
    page.evaluate.assert_called_once_with("(args) => args[0]", ["hello"])


def test_helper_over_playwright_page() -> None:
    page = mock.Mock()
    handle = _handle()
    page.query_selector.side_effect = [None, handle]
    helper = Helper(PlaywrightClient(page, script_timeout_ms=1000))
    assert helper.wait_for_element("#menu", {"interval": 10}) is handle


def test_timeout_override_restores_page_default() -> None:
    page = mock.Mock()
    page.query_selector.return_value = None
    helper = Helper(PlaywrightClient(page, script_timeout_ms=20))
    with pytest.raises(WaitTimeoutError):
        helper.wait_for_element("#menu", {"timeout": 60, "interval": 10})
    assert [c.args[0] for c in page.set_default_timeout.call_args_list] == [20, 60, 20]
