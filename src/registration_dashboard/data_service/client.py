from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional, Sequence

import aiohttp

from registration_dashboard.data_service.config import DataServiceSettings
from registration_dashboard.data_service.models import QueryError, QueryResponse
from registration_dashboard.loader.cancellation import CancellationToken
from registration_dashboard.loader.errors import TransportFailure

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    aiohttp.ClientConnectionError,
    aiohttp.ClientPayloadError,
    asyncio.TimeoutError,
    ConnectionResetError,
)


def _format_order(order: Sequence[str]) -> str:
    parts: list[str] = []
    for item in order:
        column, _, direction = item.partition(".")
        parts.append(f"{column}.{direction or 'asc'}")
    return ",".join(parts)


async def _read_payload(response: aiohttp.ClientResponse) -> Any:
    text = await response.text()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


class DataServiceClient:
    """
    Table reads against the PostgREST endpoint of the remote data service.

    Responses keep the service's `{data, error}` shape; only connectivity problems
    raise (as `TransportFailure`). Use as an async context manager so the underlying
    `aiohttp.ClientSession` is closed.
    """

    def __init__(self, settings: DataServiceSettings) -> None:
        self._settings = settings
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "DataServiceClient":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> None:
        if self._session is not None and not self._session.closed:
            return
        key = self._settings.anon_key
        self._session = aiohttp.ClientSession(
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Accept-Profile": self._settings.schema_name,
                "x-my-custom-header": self._settings.client_header,
            },
            timeout=aiohttp.ClientTimeout(total=self._settings.request_timeout_seconds),
        )

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _table_url(self, table: str) -> str:
        return f"{self._settings.url.rstrip('/')}/rest/v1/{table}"

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        order: Sequence[str] = (),
        limit: Optional[int] = None,
        signal: Optional[CancellationToken] = None,
    ) -> QueryResponse:
        if self._session is None:
            raise RuntimeError("DataServiceClient is not open. Use 'async with DataServiceClient(...)'.")
        if signal is not None:
            signal.raise_if_cancelled()

        params = {"select": columns}
        if order:
            params["order"] = _format_order(order)
        if limit is not None:
            params["limit"] = str(limit)

        try:
            async with self._session.get(self._table_url(table), params=params) as response:
                status = response.status
                payload = await _read_payload(response)
        except _TRANSPORT_ERRORS as exc:
            logger.warning("data_service.transport_error table=%s error=%s", table, type(exc).__name__)
            raise TransportFailure(
                f"Data service request failed. table={table} error={type(exc).__name__}"
            ) from exc

        if signal is not None:
            signal.raise_if_cancelled()

        if status >= 400:
            return QueryResponse(data=None, error=QueryError.from_payload(payload, status=status))
        logger.debug(
            "data_service.select_ok table=%s rows=%s",
            table,
            len(payload) if isinstance(payload, list) else None,
        )
        return QueryResponse(data=payload, error=None)

    async def check_connection(self, table: str) -> QueryResponse:
        return await self.select(table, limit=1)
