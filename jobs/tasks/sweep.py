"""
Deposit sweep tasks.

Four stages, each its own actor so they can run on different schedules:
identify -> fund -> execute -> verify. EMERGENCY_STOP_SWEEPS skips all.
"""

from typing import Any

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.settings import settings
from academy.services.blockchain.provider import create_usdc_client
from academy.services.sweep import SweepService
from academy.utils.exceptions import must_log, must_raise
from jobs.async_runner import run_async
from jobs.utils.stage import run_locked_stage

SWEEP_STAGES = ("identify", "fund", "execute", "verify")


async def _run_sweep_stage(stage: str) -> dict[str, Any] | None:
    """Run one sweep stage unless sweeps are stopped or already running."""
    if stage not in SWEEP_STAGES:
        raise ValueError(f"Unknown sweep stage: {stage}")
    if settings.emergency_stop_sweeps:
        logger.warning(f"Sweep {stage} skipped: EMERGENCY_STOP_SWEEPS is set")
        return None

    async def work(session: AsyncSession) -> dict[str, Any]:
        service = SweepService(session, create_usdc_client())
        return await getattr(service, stage)()

    summary = await run_locked_stage(f"sweep_{stage}", work)
    if summary is None:
        logger.info(f"Sweep {stage} already running elsewhere")
    else:
        logger.info(
            f"Sweep {stage} done: processed={summary.get('processed', 0)}",
            extra={"stage": stage},
        )
    return summary


def _run(stage: str) -> None:
    logger.info(f"Starting sweep {stage}...")
    try:
        run_async(_run_sweep_stage(stage))
    except Exception as e:
        if must_raise(e):
            raise
        if must_log(e):
            # RPC or database outage; the next scheduled run picks up the batch
            logger.error(f"Sweep {stage} interrupted: {e}")
        else:
            logger.exception(f"Sweep {stage} failed: {e}")


@dramatiq.actor(max_retries=0, time_limit=300_000)
def sweep_identify() -> None:
    """Find deposit addresses holding USDC."""
    _run("identify")


@dramatiq.actor(max_retries=0, time_limit=300_000)
def sweep_fund() -> None:
    """Send POL for gas to addresses that need it."""
    _run("fund")


@dramatiq.actor(max_retries=0, time_limit=300_000)
def sweep_execute() -> None:
    """Move USDC from ready addresses to the treasury."""
    _run("execute")


@dramatiq.actor(max_retries=0, time_limit=300_000)
def sweep_verify() -> None:
    """Confirm sweep receipts."""
    _run("verify")
