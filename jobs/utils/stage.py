"""Shared scaffolding for locked cron stages."""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from academy.utils.distributed_lock import DistributedLock
from academy.utils.redis_utils import get_redis_client
from jobs.utils.database import create_task_engine, create_task_session_maker

T = TypeVar("T")

STAGE_LOCK_TIMEOUT = 300


async def run_locked_stage(
    lock_key: str,
    work: Callable[[AsyncSession], Awaitable[T]],
    lock_timeout: int = STAGE_LOCK_TIMEOUT,
) -> T | None:
    """
    Run one stage under a distributed lock in a fresh session.

    The session is committed when `work` returns. A NullPool engine is
    created for the run and disposed afterwards. `lock_timeout` (seconds)
    must cover the actor time limit, otherwise the lock can expire while
    the stage is still running.

    Returns:
        Result of `work`, or None when another worker holds the lock
    """
    engine = create_task_engine()
    session_maker = create_task_session_maker(engine)
    redis_client = await get_redis_client()
    lock = DistributedLock(redis_client=redis_client)

    try:
        async with lock.lock(lock_key, timeout=lock_timeout) as acquired:
            if not acquired:
                return None
            async with session_maker() as session:
                result: Any = await work(session)
                await session.commit()
                return result
    finally:
        await redis_client.aclose()
        await engine.dispose()
