from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Optional, TypeVar

from registration_dashboard.loader.errors import LoadErrorKind

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class LoaderState(Generic[T]):
    """
    Snapshot of what a consumer renders.

    `data` keeps the last successful value across failures; `is_stale` tells the
    consumer that value may no longer reflect the remote state.
    """

    data: Optional[T] = None
    loading: bool = False
    error: Optional[str] = None
    is_stale: bool = False
    error_kind: Optional[LoadErrorKind] = None
    last_success_at: Optional[datetime] = None
