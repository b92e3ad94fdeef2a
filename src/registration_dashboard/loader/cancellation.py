from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

from registration_dashboard.loader.errors import LoadCancelled


class CancellationToken:
    """
    Cooperative cancellation signal owned by a single load attempt.

    The token is write-once: the first `cancel()` wins and later calls are ignored.
    Operations observe it with `cancelled`, `raise_if_cancelled()` or `await wait()`;
    the token never interrupts anything by itself.
    """

    __slots__ = ("_attempt", "_reason", "_cancelled_at", "_event")

    def __init__(self, attempt: int = 0) -> None:
        self._attempt = attempt
        self._reason: Optional[str] = None
        self._cancelled_at: Optional[datetime] = None
        self._event: Optional[asyncio.Event] = None

    @property
    def attempt(self) -> int:
        return self._attempt

    @property
    def cancelled(self) -> bool:
        return self._cancelled_at is not None

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    @property
    def cancelled_at(self) -> Optional[datetime]:
        return self._cancelled_at

    def cancel(self, reason: str = "requested") -> bool:
        """Signal the token. Returns False when it was already signalled."""
        if self._cancelled_at is not None:
            return False
        self._reason = reason
        self._cancelled_at = datetime.now(timezone.utc)
        if self._event is not None:
            self._event.set()
        return True

    def raise_if_cancelled(self) -> None:
        if self._cancelled_at is not None:
            raise LoadCancelled(f"Load cancelled. attempt={self._attempt} reason={self._reason}")

    async def wait(self) -> None:
        if self._event is None:
            # Created lazily so tokens can be minted outside a running loop.
            self._event = asyncio.Event()
            if self._cancelled_at is not None:
                self._event.set()
        await self._event.wait()

    def __repr__(self) -> str:
        return f"CancellationToken(attempt={self._attempt}, cancelled={self.cancelled}, reason={self._reason!r})"
