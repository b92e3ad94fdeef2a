from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class DataServiceSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = "https://REPLACE_ME.supabase.co"
    anon_key: str = "REPLACE_ME"
    schema_name: str = "public"
    client_header: str = "sefimap-app"

    request_timeout_seconds: float = 30
