from __future__ import annotations

import asyncio
import logging

from registration_dashboard.config import YamlConfigLoader
from registration_dashboard.config.models import ConfigLoadRequest
from registration_dashboard.logging import init_logging


async def main() -> None:
    config = await YamlConfigLoader().load(ConfigLoadRequest(yaml_path="examples/config.yaml"))
    init_logging(config.logging)

    logger = logging.getLogger("smoke")
    logger.info("Config loaded data_service_url=%s", config.data_service.url)
    logger.info("Loader timeout_seconds=%s datasets=%s", config.loader.timeout_seconds, len(config.datasets))


if __name__ == "__main__":
    asyncio.run(main())
