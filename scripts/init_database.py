#!/usr/bin/env python3
"""
Create database tables directly from the models.

Development only; deployed databases are managed by `alembic upgrade head`.
"""

import asyncio
import sys

from loguru import logger
from sqlalchemy.ext.asyncio import create_async_engine

from academy.config.settings import settings
from academy.models import Base

logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database() -> None:
    """Create all tables that do not exist yet."""
    if settings.environment == "production":
        logger.error("Refusing to create tables in production, use alembic")
        sys.exit(1)

    engine = create_async_engine(settings.async_database_url, echo=False)
    try:
        async with engine.begin() as conn:
            logger.info("Creating tables (checkfirst=True)...")
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    finally:
        await engine.dispose()

    logger.success("Database tables created")


if __name__ == "__main__":
    asyncio.run(init_database())
