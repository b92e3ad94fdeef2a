from registration_dashboard.config.interfaces import ConfigLoader
from registration_dashboard.config.loader import YamlConfigLoader
from registration_dashboard.config.models import AppConfig, ConfigLoadRequest, LoggingSettings

__all__ = ["AppConfig", "ConfigLoadRequest", "ConfigLoader", "LoggingSettings", "YamlConfigLoader"]
