from __future__ import annotations

import asyncio
import dataclasses
import logging
import operator
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from registration_dashboard.loader.cancellation import CancellationToken
from registration_dashboard.loader.config import LoaderSettings
from registration_dashboard.loader.errors import (
    DeadlineExceeded,
    LoadCancelled,
    LoadError,
    classify_error,
)
from registration_dashboard.loader.race import discard_outcome, race_deadline
from registration_dashboard.loader.state import LoaderState

logger = logging.getLogger(__name__)

T = TypeVar("T")

FetchOperation = Callable[[CancellationToken], Awaitable[T]]
ErrorCallback = Callable[[LoadError], Any]
SuccessCallback = Callable[[T], Any]
StateListener = Callable[[LoaderState[T]], Any]
KeyEquals = Callable[[Any, Any], bool]


@dataclass(slots=True)
class _Attempt:
    number: int
    token: CancellationToken
    operation: Optional[asyncio.Future] = None
    driver: Optional[asyncio.Task] = None


async def _invoke(fetch: FetchOperation, token: CancellationToken) -> Any:
    return await fetch(token)


def _log_driver_result(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("loader.driver_failed task=%s", task.get_name(), exc_info=exc)


class GuardedLoader(Generic[T]):
    """
    Runs a caller-supplied fetch operation under a dedup/supersede/deadline discipline.

    At most one attempt is current. `load()` is a no-op while an attempt is in flight
    unless forced; a forced load, `cancel()` and `close()` supersede the current
    attempt, after which nothing that attempt produces can reach the state. Failures
    are captured in the state and reported to `on_error`; nothing is retried.
    """

    def __init__(
        self,
        fetch: FetchOperation,
        *,
        settings: Optional[LoaderSettings] = None,
        dependency_key: Any = (),
        key_equals: Optional[KeyEquals] = None,
        on_error: Optional[ErrorCallback] = None,
        on_success: Optional[SuccessCallback] = None,
        name: str = "loader",
    ) -> None:
        self._fetch = fetch
        self._settings = settings or LoaderSettings()
        self._dependency_key = dependency_key
        self._key_equals: KeyEquals = key_equals or operator.eq
        self._on_error = on_error
        self._on_success = on_success
        self._name = name

        # Pending from construction when a start will load straight away.
        self._state: LoaderState[T] = LoaderState(loading=self._settings.auto_load)
        self._listeners: list[StateListener] = []
        self._current: Optional[_Attempt] = None
        self._attempt_count = 0
        self._started = False
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def settings(self) -> LoaderSettings:
        return self._settings

    @property
    def state(self) -> LoaderState[T]:
        return self._state

    @property
    def data(self) -> Optional[T]:
        return self._state.data

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> Optional[str]:
        return self._state.error

    @property
    def is_stale(self) -> bool:
        return self._state.is_stale

    @property
    def dependency_key(self) -> Any:
        return self._dependency_key

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "GuardedLoader[T]":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def start(self) -> None:
        """Open the loader's scope, loading once when `auto_load` is enabled."""
        if self._closed:
            raise RuntimeError(f"Loader is closed. name={self._name}")
        if self._started:
            return
        self._started = True
        logger.debug("loader.started name=%s auto_load=%s", self._name, self._settings.auto_load)
        if self._settings.auto_load:
            self.load()

    def close(self) -> None:
        """Tear the scope down. In-flight work can no longer touch the state."""
        if self._closed:
            return
        self._closed = True
        self._supersede(reason="closed")
        self._listeners.clear()
        logger.debug("loader.closed name=%s", self._name)

    def load(self, force: bool = False) -> None:
        if self._closed:
            logger.debug("loader.load_ignored_closed name=%s", self._name)
            return
        if self._current is not None and not force:
            logger.debug(
                "loader.load_deduplicated name=%s attempt=%s",
                self._name,
                self._current.number,
            )
            return

        loop = asyncio.get_running_loop()
        self._supersede(reason="superseded")

        self._attempt_count += 1
        attempt = _Attempt(number=self._attempt_count, token=CancellationToken(self._attempt_count))
        self._current = attempt
        self._update(loading=True, error=None, error_kind=None)
        if self._current is not attempt:
            # A listener closed the loader or started a newer attempt.
            logger.debug("loader.attempt_preempted name=%s attempt=%s", self._name, attempt.number)
            return

        logger.debug("loader.attempt_started name=%s attempt=%s force=%s", self._name, attempt.number, force)
        attempt.operation = loop.create_task(
            _invoke(self._fetch, attempt.token),
            name=f"{self._name}-fetch-{attempt.number}",
        )
        attempt.driver = loop.create_task(self._run(attempt), name=f"{self._name}-attempt-{attempt.number}")
        attempt.driver.add_done_callback(_log_driver_result)

    def reload(self) -> None:
        self.load(force=True)

    def cancel(self) -> None:
        if self._current is None:
            return
        self._supersede(reason="cancelled")
        if not self._closed:
            self._update(loading=False)

    def set_data(self, value: Optional[T]) -> None:
        if self._closed:
            logger.debug("loader.set_data_ignored_closed name=%s", self._name)
            return
        self._update(data=value)

    def set_dependency_key(self, key: Any) -> None:
        if self._key_equals(self._dependency_key, key):
            return
        self._dependency_key = key
        if self._started and not self._closed and self._settings.auto_load:
            logger.info("loader.dependency_changed name=%s", self._name)
            self.load(force=True)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def join(self) -> LoaderState[T]:
        """Wait until no attempt is in flight, following any supersessions."""
        while self._current is not None:
            driver = self._current.driver
            if driver is None or driver.done():
                break
            await asyncio.wait({driver})
        return self._state

    def _is_current(self, attempt: _Attempt) -> bool:
        return not self._closed and self._current is attempt

    def _supersede(self, *, reason: str) -> None:
        attempt = self._current
        if attempt is None:
            return
        self._current = None
        attempt.token.cancel(reason)
        if attempt.driver is not None and not attempt.driver.done():
            # Only the loader's own continuation is cancelled; the fetch keeps
            # running until it observes its token.
            attempt.driver.cancel()
        if attempt.operation is not None:
            attempt.operation.add_done_callback(discard_outcome)
        logger.debug("loader.attempt_abandoned name=%s attempt=%s reason=%s", self._name, attempt.number, reason)

    async def _run(self, attempt: _Attempt) -> None:
        assert attempt.operation is not None
        try:
            data = await race_deadline(attempt.operation, timeout_seconds=self._settings.timeout_seconds)
        except (asyncio.CancelledError, LoadCancelled):
            self._drop(attempt)
        except DeadlineExceeded as exc:
            attempt.token.cancel("deadline_exceeded")
            self._fail(attempt, exc)
        except Exception as exc:
            self._fail(attempt, classify_error(exc))
        else:
            self._succeed(attempt, data)

    def _drop(self, attempt: _Attempt) -> None:
        logger.debug("loader.attempt_cancelled name=%s attempt=%s", self._name, attempt.number)
        if not self._is_current(attempt):
            return
        # The operation gave up on its own; only release the in-flight slot.
        self._current = None
        self._update(loading=False)

    def _succeed(self, attempt: _Attempt, data: T) -> None:
        if not self._is_current(attempt):
            logger.debug("loader.stale_result_discarded name=%s attempt=%s", self._name, attempt.number)
            return
        self._current = None
        self._update(
            data=data,
            loading=False,
            error=None,
            error_kind=None,
            is_stale=False,
            last_success_at=datetime.now(timezone.utc),
        )
        logger.debug("loader.attempt_succeeded name=%s attempt=%s", self._name, attempt.number)
        if self._on_success is not None:
            self._invoke_callback("on_success", self._on_success, data)

    def _fail(self, attempt: _Attempt, error: LoadError) -> None:
        if not self._is_current(attempt):
            logger.debug("loader.stale_error_discarded name=%s attempt=%s", self._name, attempt.number)
            return
        self._current = None
        self._update(
            loading=False,
            error=error.user_message,
            error_kind=error.kind,
            is_stale=True,
        )
        logger.warning(
            "loader.attempt_failed name=%s attempt=%s kind=%s error=%s",
            self._name,
            attempt.number,
            error.kind.value,
            error,
        )
        if self._on_error is not None:
            self._invoke_callback("on_error", self._on_error, error)

    def _update(self, **changes: Any) -> None:
        self._state = dataclasses.replace(self._state, **changes)
        for listener in list(self._listeners):
            self._invoke_callback("listener", listener, self._state)

    def _invoke_callback(self, kind: str, callback: Callable[[Any], Any], arg: Any) -> None:
        try:
            callback(arg)
        except Exception:
            logger.exception("loader.callback_failed name=%s callback=%s", self._name, kind)
