"""
Payout batch task.

Daily batching of pending commissions. Batches are only created here;
approval and execution stay with an admin.
"""

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.services.blockchain.gas_manager import GasManager
from academy.services.blockchain.provider import create_usdc_client
from academy.services.payout import PayoutBatchBuilder
from jobs.async_runner import run_async
from jobs.utils.stage import run_locked_stage


@dramatiq.actor(max_retries=3, time_limit=300_000)
def create_payout_batches() -> None:
    """Group pending commissions into direct bonus and residual batches."""
    logger.info("Starting payout batch creation...")

    try:
        batch_ids = run_async(_create_payout_batches_async())
        if batch_ids is not None:
            logger.info(f"Payout batch creation complete: {len(batch_ids)} batches")
    except Exception as e:
        logger.exception(f"Payout batch creation failed: {e}")


async def _create_payout_batches_async() -> list[int] | None:
    async def work(session: AsyncSession) -> list[int]:
        builder = PayoutBatchBuilder(session, GasManager(session, create_usdc_client()))
        batches = await builder.create_scheduled_batches()
        return [batch.id for batch in batches]

    return await run_locked_stage("payout_batches", work)
