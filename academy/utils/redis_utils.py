"""Redis connection utilities."""

import redis.asyncio as redis

from academy.config.settings import settings


async def get_redis_client() -> redis.Redis:
    """
    Create a Redis client from settings.

    Returns:
        redis.Redis: client with decode_responses=True; caller closes it
    """
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
    )


def get_redis_url() -> str:
    """
    Build Redis URL from settings.

    WARNING: contains the password in plaintext. Use get_redis_url_masked()
    for logging.
    """
    if settings.redis_password:
        return (
            f"redis://:{settings.redis_password}@{settings.redis_host}:"
            f"{settings.redis_port}/{settings.redis_db}"
        )
    return f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"


def get_redis_url_masked() -> str:
    """Redis URL with the password replaced, safe for logs."""
    if settings.redis_password:
        return (
            f"redis://:****@{settings.redis_host}:"
            f"{settings.redis_port}/{settings.redis_db}"
        )
    return f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
