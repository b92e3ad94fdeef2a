from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional

import aiohttp

DEFAULT_OPERATION_MESSAGE = "Error while loading data."
DEADLINE_MESSAGE = 'The load took too long. Click "Refresh" to try again.'
TRANSPORT_MESSAGE = "Connection error. Check your internet connection."

_TRANSPORT_MARKERS: tuple[str, ...] = ("Failed to fetch", "NetworkError")

_TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    aiohttp.ClientConnectionError,
    ConnectionError,
)


class LoadErrorKind(str, Enum):
    CANCELLED = "cancelled"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    TRANSPORT_FAILURE = "transport_failure"
    OPERATION_FAILURE = "operation_failure"


class LoadError(RuntimeError):
    """Base class for every outcome a load attempt can fail with."""

    kind: LoadErrorKind = LoadErrorKind.OPERATION_FAILURE

    def __init__(self, message: str, *, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_message = user_message or message


class LoadCancelled(LoadError):
    """Raised by an operation that observed its cancellation signal."""

    kind = LoadErrorKind.CANCELLED

    def __init__(self, message: str = "Load cancelled.") -> None:
        super().__init__(message)


class DeadlineExceeded(LoadError):
    kind = LoadErrorKind.DEADLINE_EXCEEDED

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(
            f"Load deadline exceeded. timeout_seconds={timeout_seconds}",
            user_message=DEADLINE_MESSAGE,
        )
        self.timeout_seconds = timeout_seconds


class TransportFailure(LoadError):
    kind = LoadErrorKind.TRANSPORT_FAILURE

    def __init__(self, message: str) -> None:
        super().__init__(message, user_message=TRANSPORT_MESSAGE)


class OperationFailure(LoadError):
    kind = LoadErrorKind.OPERATION_FAILURE

    def __init__(self, message: str = "") -> None:
        message = message or DEFAULT_OPERATION_MESSAGE
        super().__init__(message, user_message=message)


def is_cancellation(exc: BaseException) -> bool:
    return isinstance(exc, (LoadCancelled, asyncio.CancelledError))


def classify_error(exc: BaseException) -> LoadError:
    """
    Map any exception raised by a fetch operation onto the load error taxonomy.

    Errors that are already a `LoadError` are returned unchanged. Anything else is
    wrapped, with the original kept as `__cause__`.
    """
    if isinstance(exc, LoadError):
        return exc
    if isinstance(exc, asyncio.CancelledError):
        classified: LoadError = LoadCancelled()
    else:
        message = str(exc).strip()
        if isinstance(exc, _TRANSPORT_ERRORS) or any(marker in message for marker in _TRANSPORT_MARKERS):
            classified = TransportFailure(message or type(exc).__name__)
        else:
            classified = OperationFailure(message)
    classified.__cause__ = exc
    return classified
