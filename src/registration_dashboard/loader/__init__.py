"""Guarded loading of remote data: dedup, supersede, deadline and stale tracking."""

from registration_dashboard.loader.cancellation import CancellationToken
from registration_dashboard.loader.config import LoaderSettings
from registration_dashboard.loader.errors import (
    DeadlineExceeded,
    LoadCancelled,
    LoadError,
    LoadErrorKind,
    OperationFailure,
    TransportFailure,
    classify_error,
)
from registration_dashboard.loader.guarded import FetchOperation, GuardedLoader
from registration_dashboard.loader.race import race_deadline
from registration_dashboard.loader.state import LoaderState

__all__ = [
    "CancellationToken",
    "DeadlineExceeded",
    "FetchOperation",
    "GuardedLoader",
    "LoadCancelled",
    "LoadError",
    "LoadErrorKind",
    "LoaderSettings",
    "LoaderState",
    "OperationFailure",
    "TransportFailure",
    "classify_error",
    "race_deadline",
]
