from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LoaderSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    # Deadline on the loader's patience for a single attempt
    timeout_seconds: float = Field(default=15.0, gt=0)

    # Load once on start() and again on every dependency key change
    auto_load: bool = True
