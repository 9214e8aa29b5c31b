"""
Logging setup.

Configures loguru sinks for a process (API server, scheduler, worker).
"""

import sys

from loguru import logger

from academy.config.settings import settings


def setup_logging(process_name: str) -> None:
    """Console sink at the configured level plus a rotating file per process."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    logger.add(
        f"logs/{process_name}.log",
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
        encoding="utf-8",
    )
    logger.info(f"Starting academy {process_name} ({settings.environment})")
