"""
Monthly volume task.

Runs on the 1st of each month: archive volumes, create residual
commissions, reset current-month volumes.
"""

from typing import Any

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.services.commission import MonthlyVolumeProcessor
from jobs.async_runner import run_async
from jobs.utils.stage import run_locked_stage

MONTHLY_VOLUMES_TIME_LIMIT = 1800  # seconds


@dramatiq.actor(max_retries=0, time_limit=MONTHLY_VOLUMES_TIME_LIMIT * 1000)
def process_monthly_volumes() -> None:
    """Close the previous month."""
    logger.info("Starting monthly volume processing...")

    try:
        steps = run_async(_process_monthly_volumes_async())
        if steps is None:
            return
        failed = [step for step in steps if not step["success"]]
        if failed:
            logger.error(f"Monthly volume processing stopped: {failed[0]['message']}")
        else:
            logger.success(f"Monthly volume processing complete ({len(steps)} steps)")
    except Exception as e:
        logger.exception(f"Monthly volume processing failed: {e}")


async def _process_monthly_volumes_async() -> list[dict[str, Any]] | None:
    async def work(session: AsyncSession) -> list[dict[str, Any]]:
        return await MonthlyVolumeProcessor(session).process_monthly_volumes()

    return await run_locked_stage(
        "monthly_volumes", work, lock_timeout=MONTHLY_VOLUMES_TIME_LIMIT
    )
