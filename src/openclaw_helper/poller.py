"""Timeout-bounded condition polling.

A predicate is a zero-argument callable evaluated on a fixed cadence until it
reports success, reports failure, or the deadline passes:

- truthy result: satisfied (the value is kept on the outcome)
- falsy result: pending, evaluate again after the interval
- ``Failed(reason)`` or an exception: failed, resolved immediately

The synchronous and asynchronous entry points share one state machine
(``_PollRun``) whose result is a ``concurrent.futures.Future``.
"""
from __future__ import annotations

import enum
import logging
import threading
import time
from concurrent.futures import Future
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol

from .config import DEFAULT_TIMEOUT_MS, check_poll_args
from .errors import PredicateError, WaitTimeoutError

logger = logging.getLogger(__name__)

Predicate = Callable[[], Any]


class TimeoutBudget(Protocol):
    def get_script_timeout(self) -> int: ...

    def set_script_timeout(self, timeout_ms: int) -> None: ...


class OutcomeStatus(str, enum.Enum):
    SUCCESS = "success"
    TIMED_OUT = "timed_out"
    PREDICATE_ERROR = "predicate_error"


@dataclass(frozen=True)
class Failed:
    """Returned by a predicate to report failure without raising."""

    reason: Any


@dataclass(frozen=True)
class PollOutcome:
    status: OutcomeStatus
    timeout_ms: int
    elapsed_ms: float
    ticks: int
    value: Any = None
    cause: Any = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    def raise_for_status(self) -> None:
        if self.status is OutcomeStatus.TIMED_OUT:
            raise WaitTimeoutError(self.timeout_ms, self.elapsed_ms, self.ticks)
        if self.status is OutcomeStatus.PREDICATE_ERROR:
            if isinstance(self.cause, BaseException):
                raise PredicateError(self.cause) from self.cause
            raise PredicateError(self.cause)


class _ScriptTimeoutOverride:
    """Overrides currently raising one client's script timeout."""

    def __init__(self, client: TimeoutBudget, baseline: int) -> None:
        self.client = client
        self.baseline = baseline
        self.active: List[int] = []

    def apply(self) -> None:
        target = max([self.baseline, *self.active])
        if self.client.get_script_timeout() != target:
            logger.debug("setting script timeout to %dms", target)
            self.client.set_script_timeout(target)


# Keyed by id(client); an entry only lives while it holds a reference to its client.
_overrides: Dict[int, _ScriptTimeoutOverride] = {}
_overrides_lock = threading.Lock()


@contextmanager
def raised_script_timeout(client: TimeoutBudget, timeout_ms: int) -> Iterator[int]:
    """Make sure the client's script timeout is at least ``timeout_ms``.

    Overlapping overrides on one client share a record: the client holds the
    largest active override, and the value seen before the first override is
    put back when the last one exits, whichever way the blocks exit.
    """
    with _overrides_lock:
        override = _overrides.get(id(client))
        baseline = override.baseline if override is not None else client.get_script_timeout()
        if timeout_ms > baseline:
            if override is None:
                override = _overrides[id(client)] = _ScriptTimeoutOverride(client, baseline)
            override.active.append(timeout_ms)
            override.apply()
        else:
            override = None

    if override is None:
        yield client.get_script_timeout()
        return

    try:
        yield timeout_ms
    finally:
        with _overrides_lock:
            override.active.remove(timeout_ms)
            if not override.active:
                del _overrides[id(client)]
            override.apply()


class _PollRun:
    def __init__(
        self,
        predicate: Predicate,
        interval_ms: int,
        timeout_ms: int,
        cleanup: ExitStack,
    ) -> None:
        self._predicate = predicate
        self._interval = interval_ms / 1000
        self._timeout_ms = timeout_ms
        self._cleanup = cleanup
        self._timer: Optional[threading.Timer] = None
        self._ticks = 0
        self._started = 0.0
        self._deadline = 0.0
        self.future: Future = Future()

    @property
    def timer_active(self) -> bool:
        return self._timer is not None

    def start(self) -> Future:
        self.future.set_running_or_notify_cancel()
        self._started = time.monotonic()
        self._deadline = self._started + self._timeout_ms / 1000
        self._tick()
        return self.future

    def _tick(self) -> None:
        self._timer = None
        if self.future.done():
            return
        # The first evaluation always happens; later ones only before the deadline.
        if self._ticks and time.monotonic() >= self._deadline:
            self._resolve(OutcomeStatus.TIMED_OUT)
            return

        self._ticks += 1
        try:
            result = self._predicate()
        except BaseException as exc:
            self._resolve(OutcomeStatus.PREDICATE_ERROR, cause=exc)
            if not isinstance(exc, Exception):
                raise
            return

        if isinstance(result, Failed):
            self._resolve(OutcomeStatus.PREDICATE_ERROR, cause=result.reason)
        elif result:
            self._resolve(OutcomeStatus.SUCCESS, value=result)
        else:
            self._schedule()

    def _schedule(self) -> None:
        remaining = max(0.0, self._deadline - time.monotonic())
        self._timer = threading.Timer(min(self._interval, remaining), self._tick)
        self._timer.daemon = True
        self._timer.start()

    def _resolve(self, status: OutcomeStatus, value: Any = None, cause: Any = None) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        outcome = PollOutcome(
            status=status,
            timeout_ms=self._timeout_ms,
            elapsed_ms=(time.monotonic() - self._started) * 1000,
            ticks=self._ticks,
            value=value,
            cause=cause,
        )
        logger.debug(
            "poll resolved %s after %d checks (%.0fms)",
            status.value, outcome.ticks, outcome.elapsed_ms,
        )
        try:
            self._cleanup.close()
        finally:
            self.future.set_result(outcome)


class Poller:
    """Drives predicates to a terminal outcome.

    ``client`` supplies the ambient script timeout. Without one, polls that do
    not pass an explicit timeout fall back to ``DEFAULT_TIMEOUT_MS``.
    """

    def __init__(self, client: Optional[TimeoutBudget] = None) -> None:
        self.client = client

    def effective_timeout(self, timeout_ms: int) -> int:
        if timeout_ms > 0:
            return timeout_ms
        if self.client is None:
            return DEFAULT_TIMEOUT_MS
        return self.client.get_script_timeout()

    def start(
        self,
        predicate: Predicate,
        interval_ms: int,
        timeout_ms: int = 0,
        on_complete: Optional[Callable[[PollOutcome], Any]] = None,
    ) -> _PollRun:
        check_poll_args(interval_ms, timeout_ms)
        if not callable(predicate):
            raise TypeError(f"predicate must be callable, got {type(predicate).__name__}")

        cleanup = ExitStack()
        if timeout_ms > 0 and self.client is not None:
            cleanup.enter_context(raised_script_timeout(self.client, timeout_ms))
        run = _PollRun(predicate, interval_ms, self.effective_timeout(timeout_ms), cleanup)
        if on_complete is not None:
            run.future.add_done_callback(lambda future: on_complete(future.result()))
        try:
            run.start()
        except BaseException:
            cleanup.close()
            raise
        return run

    def poll(
        self,
        predicate: Predicate,
        interval_ms: int,
        timeout_ms: int = 0,
        on_complete: Optional[Callable[[PollOutcome], Any]] = None,
    ):
        """Poll ``predicate`` every ``interval_ms`` until it is satisfied.

        Without ``on_complete`` this blocks, raises ``WaitTimeoutError`` or
        ``PredicateError`` on failure and returns the ``PollOutcome``.
        With ``on_complete`` it returns a future at once and calls
        ``on_complete(outcome)`` exactly once when the poll resolves.
        """
        run = self.start(predicate, interval_ms, timeout_ms, on_complete)
        if on_complete is None:
            outcome = run.future.result()
            outcome.raise_for_status()
            return outcome
        return run.future


def poll(
    predicate: Predicate,
    interval_ms: int,
    timeout_ms: int = 0,
    on_complete: Optional[Callable[[PollOutcome], Any]] = None,
    client: Optional[TimeoutBudget] = None,
):
    return Poller(client).poll(predicate, interval_ms, timeout_ms, on_complete)
