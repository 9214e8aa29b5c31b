"""
Distributed lock on Redis.

Guards cron stages (sweep, payouts, monthly volumes) against running twice
at the same time on different workers.
"""

import asyncio
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as redis
from loguru import logger

from academy.config.constants import (
    DISTRIBUTED_LOCK_BLOCKING_TIMEOUT,
    DISTRIBUTED_LOCK_TIMEOUT,
)

# Delete the key only if it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

LOCK_KEY_PREFIX = "lock:"


class DistributedLock:
    """
    Redis SET NX EX lock with token-checked release.

    Example:
        lock = DistributedLock(redis_client=redis_client)
        async with lock.lock("sweep_identify", timeout=300) as acquired:
            if acquired:
                ...
    """

    def __init__(self, redis_client: redis.Redis | None) -> None:
        self.redis_client = redis_client

    async def acquire(
        self,
        key: str,
        timeout: int = DISTRIBUTED_LOCK_TIMEOUT,
        blocking_timeout: float = DISTRIBUTED_LOCK_BLOCKING_TIMEOUT,
    ) -> str | None:
        """
        Try to take the lock.

        Args:
            key: Lock name
            timeout: Expiry in seconds
            blocking_timeout: How long to keep retrying

        Returns:
            Owner token, or None if the lock is held elsewhere
        """
        if self.redis_client is None:
            return None

        token = secrets.token_hex(16)
        deadline = asyncio.get_running_loop().time() + blocking_timeout

        while True:
            acquired = await self.redis_client.set(
                f"{LOCK_KEY_PREFIX}{key}", token, nx=True, ex=timeout
            )
            if acquired:
                return token
            if asyncio.get_running_loop().time() >= deadline:
                return None
            await asyncio.sleep(0.1)

    async def release(self, key: str, token: str) -> bool:
        """Release the lock if we still own it."""
        if self.redis_client is None:
            return False
        result = await self.redis_client.eval(
            _RELEASE_SCRIPT, 1, f"{LOCK_KEY_PREFIX}{key}", token
        )
        return bool(result)

    @asynccontextmanager
    async def lock(
        self,
        key: str,
        timeout: int = DISTRIBUTED_LOCK_TIMEOUT,
        blocking_timeout: float = DISTRIBUTED_LOCK_BLOCKING_TIMEOUT,
    ) -> AsyncIterator[bool]:
        """
        Hold the lock for the duration of the block.

        Yields True when the lock was taken. Without a Redis client the
        block runs unguarded and True is yielded.
        """
        if self.redis_client is None:
            logger.warning(f"No Redis client - running '{key}' without lock")
            yield True
            return

        token = await self.acquire(key, timeout, blocking_timeout)
        if token is None:
            logger.info(f"Lock '{key}' is held by another worker, skipping")
            yield False
            return

        try:
            yield True
        finally:
            try:
                released = await self.release(key, token)
                if not released:
                    logger.warning(f"Lock '{key}' expired before release")
            except redis.RedisError as e:
                logger.error(f"Failed to release lock '{key}': {e}")
