"""
Subscription check task.

Daily deactivation of members with overdue subscription payments.
"""

from typing import Any

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.services.subscription_monitor import SubscriptionMonitor
from jobs.async_runner import run_async
from jobs.utils.stage import run_locked_stage


@dramatiq.actor(max_retries=3, time_limit=300_000)
def check_subscriptions() -> None:
    """Deactivate lapsed subscribers."""
    logger.info("Starting subscription check...")

    try:
        result = run_async(_check_subscriptions_async())
        if result is not None:
            logger.info(f"Subscription check complete: {result['deactivated']} deactivated")
    except Exception as e:
        logger.exception(f"Subscription check failed: {e}")


async def _check_subscriptions_async() -> dict[str, Any] | None:
    async def work(session: AsyncSession) -> dict[str, Any]:
        return await SubscriptionMonitor(session).check_lapsed()

    return await run_locked_stage("subscription_check", work)
