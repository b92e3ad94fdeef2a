"""Access to the remote data service (PostgREST `{data, error}` responses)."""

from registration_dashboard.data_service.adapter import unwrap_response
from registration_dashboard.data_service.client import DataServiceClient
from registration_dashboard.data_service.config import DataServiceSettings
from registration_dashboard.data_service.models import QueryError, QueryResponse

__all__ = ["DataServiceClient", "DataServiceSettings", "QueryError", "QueryResponse", "unwrap_response"]
