from __future__ import annotations

import logging
from typing import Any, Optional

from registration_dashboard.data_service.models import QueryResponse
from registration_dashboard.loader.cancellation import CancellationToken
from registration_dashboard.loader.errors import OperationFailure

logger = logging.getLogger(__name__)


def unwrap_response(response: QueryResponse, signal: Optional[CancellationToken] = None) -> Any:
    """Turn a `{data, error}` response into its data, raising on error or cancellation."""
    if signal is not None:
        signal.raise_if_cancelled()

    if response.error is not None:
        logger.error(
            "data_service.query_error code=%s status=%s message=%s",
            response.error.code,
            response.error.status,
            response.error.message,
        )
        raise OperationFailure(response.error.message)

    return response.data
