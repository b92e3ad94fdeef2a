from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class QueryError:
    message: str
    code: Optional[str] = None
    details: Optional[str] = None
    hint: Optional[str] = None
    status: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Any, *, status: Optional[int] = None) -> "QueryError":
        if isinstance(payload, dict):
            message = payload.get("message") or payload.get("error") or ""
            return cls(
                message=str(message),
                code=_optional_str(payload.get("code")),
                details=_optional_str(payload.get("details")),
                hint=_optional_str(payload.get("hint")),
                status=status,
            )
        text = str(payload).strip() if payload is not None else ""
        return cls(message=text or f"Data service returned HTTP {status}.", status=status)


@dataclass(frozen=True, slots=True)
class QueryResponse:
    """The `{data, error}` shape returned by the remote data service."""

    data: Any = None
    error: Optional[QueryError] = None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)
