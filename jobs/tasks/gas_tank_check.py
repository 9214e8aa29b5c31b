"""
Gas tank check task.

Hourly POL balance check of the gas tank plus the payout wallet's USDC
balance. Non-healthy readings are audited by the gas manager.
"""

from typing import Any

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.services.blockchain.gas_manager import GasManager
from academy.services.blockchain.provider import create_usdc_client
from academy.utils.exceptions import TreasuryConfigurationError
from jobs.async_runner import run_async
from jobs.utils.stage import run_locked_stage


@dramatiq.actor(max_retries=1, time_limit=120_000)
def check_gas_tank() -> None:
    """Report gas tank and payout wallet health."""
    try:
        result = run_async(_check_gas_tank_async())
        if result is not None:
            logger.info(f"Gas tank check complete: {result['gas_tank']['status']}")
    except Exception as e:
        logger.exception(f"Gas tank check failed: {e}")


async def _check_gas_tank_async() -> dict[str, Any] | None:
    async def work(session: AsyncSession) -> dict[str, Any]:
        manager = GasManager(session, create_usdc_client())
        gas_tank = await manager.check_gas_tank()
        payout_wallet = None
        try:
            payout_wallet = await manager.check_payout_wallet()
        except TreasuryConfigurationError as e:
            logger.info(f"Payout wallet check skipped: {e}")
        return {"gas_tank": gas_tank, "payout_wallet": payout_wallet}

    return await run_locked_stage("gas_tank_check", work)
