from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from registration_dashboard.data_service.config import DataServiceSettings
from registration_dashboard.datasets import DEFAULT_DATASETS, DatasetSettings
from registration_dashboard.loader.config import LoaderSettings


class AppSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = "registration-dashboard"

    # Table probed by `check_connection`
    health_table: str = "inscriptions"


class FileRotationSettings(BaseModel):
    """
    Date-based rotation settings (daily).

    Maps onto the standard library TimedRotatingFileHandler.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_count: int = 5


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    path: str = "data/logs/registration-dashboard.log"
    rotation: FileRotationSettings = Field(default_factory=FileRotationSettings)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = "INFO"
    file: FileLoggingSettings = Field(default_factory=FileLoggingSettings)


class AppConfig(BaseModel):
    """Effective runtime configuration after applying all precedence rules."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    app: AppSettings = Field(default_factory=AppSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    data_service: DataServiceSettings = Field(default_factory=DataServiceSettings)
    loader: LoaderSettings = Field(default_factory=LoaderSettings)
    datasets: list[DatasetSettings] = Field(default_factory=lambda: list(DEFAULT_DATASETS))


@dataclass(frozen=True, slots=True)
class ConfigLoadRequest:
    """
    Optional inputs for a configuration loader.

    `yaml_path=None` skips the YAML layer; `dotenv_path=None` skips `.env`.
    """

    yaml_path: Optional[str] = "data/config/config.yaml"
    env_prefix: str = "APP__"
    dotenv_path: Optional[str] = ".env"
