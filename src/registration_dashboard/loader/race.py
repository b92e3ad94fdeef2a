from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Literal, TypeVar

from registration_dashboard.loader.errors import DeadlineExceeded, is_cancellation

logger = logging.getLogger(__name__)

T = TypeVar("T")

_Winner = Literal["operation", "deadline"]


def discard_outcome(task: asyncio.Future) -> None:
    # Retrieves the outcome so an abandoned operation never surfaces as
    # "exception was never retrieved".
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None and not is_cancellation(exc):
        logger.debug("loader.abandoned_operation_failed error=%s", type(exc).__name__)


async def race_deadline(operation: Awaitable[T], *, timeout_seconds: float) -> T:
    """
    Race `operation` against a timer of `timeout_seconds`.

    Whichever settles first decides the outcome. When the timer fires first,
    `DeadlineExceeded` is raised and the operation keeps running detached: it is not
    cancelled, its eventual outcome is consumed and discarded. When the operation
    settles first the timer handle is cancelled. If the awaiting task is itself
    cancelled, both are disposed the same way and the cancellation propagates.
    """
    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(operation)
    winner: asyncio.Future[_Winner] = loop.create_future()

    def _settle(source: _Winner) -> None:
        if not winner.done():
            winner.set_result(source)

    def _on_operation_done(_: asyncio.Future) -> None:
        _settle("operation")

    timer = loop.call_later(timeout_seconds, _settle, "deadline")
    task.add_done_callback(_on_operation_done)
    source: _Winner | None = None
    try:
        source = await winner
    finally:
        timer.cancel()
        task.remove_done_callback(_on_operation_done)
        if source != "operation":
            task.add_done_callback(discard_outcome)

    if source == "deadline":
        raise DeadlineExceeded(timeout_seconds)
    return task.result()
