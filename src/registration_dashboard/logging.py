from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from registration_dashboard.config.models import LoggingSettings

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Marks handlers installed here so repeated init_logging() calls replace them.
_HANDLER_ATTR = "_registration_dashboard_handler"


def _mark(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_ATTR, True)
    return handler


def init_logging(settings: LoggingSettings) -> None:
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown logging level: {settings.level}")

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(_LOG_FORMAT)
    console = _mark(logging.StreamHandler())
    console.setFormatter(formatter)
    root.addHandler(console)

    if settings.file.enabled:
        path = Path(settings.file.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = _mark(
            logging.handlers.TimedRotatingFileHandler(
                path,
                when="midnight",
                backupCount=settings.file.rotation.backup_count,
                encoding="utf-8",
            )
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(level)
    # Keep per-request noise from aiohttp out of INFO logs.
    logging.getLogger("aiohttp.access").setLevel(max(level, logging.WARNING))
