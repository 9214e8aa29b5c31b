"""
API server entry point.

Usage:
    python -m academy.api.main
"""

from aiohttp import web
from loguru import logger

from academy.config.logging import setup_logging
from academy.config.settings import settings

from .app import create_app


async def _dispose_engine(app: web.Application) -> None:
    from academy.config.database import async_engine
    await async_engine.dispose()
    logger.info("Database connections closed")


def main() -> None:
    setup_logging("api")

    app = create_app()
    app.on_cleanup.append(_dispose_engine)

    logger.info(f"Listening on {settings.api_host}:{settings.api_port}")
    web.run_app(app, host=settings.api_host, port=settings.api_port, print=None)


if __name__ == "__main__":
    main()
