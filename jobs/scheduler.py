"""
Cron scheduler.

Enqueues the dramatiq actors on their schedules; workers do the work.

Usage:
    python -m jobs.scheduler
"""

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from academy.config.logging import setup_logging
from academy.config.settings import settings
from jobs.health import start_health_server, stop_health_server
from jobs.tasks.gas_tank_check import check_gas_tank
from jobs.tasks.monthly_volumes import process_monthly_volumes
from jobs.tasks.payout_batches import create_payout_batches
from jobs.tasks.subscription_check import check_subscriptions
from jobs.tasks.sweep import sweep_execute, sweep_fund, sweep_identify, sweep_verify

# (job id, actor, cron fields); all times UTC
SCHEDULE = (
    ("sweep_identify", sweep_identify, {"minute": "0,30"}),
    ("sweep_fund", sweep_fund, {"minute": "5,35"}),
    ("sweep_execute", sweep_execute, {"minute": "10,40"}),
    ("sweep_verify", sweep_verify, {"minute": "20,50"}),
    ("payout_batches", create_payout_batches, {"hour": "2", "minute": "0"}),
    ("subscription_check", check_subscriptions, {"hour": "3", "minute": "0"}),
    ("monthly_volumes", process_monthly_volumes, {"day": "1", "hour": "0", "minute": "5"}),
    ("gas_tank_check", check_gas_tank, {"minute": "15"}),
)

scheduler_instance: AsyncIOScheduler | None = None


def create_scheduler() -> AsyncIOScheduler:
    """Scheduler with every cron stage registered."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    for job_id, actor, fields in SCHEDULE:
        scheduler.add_job(
            actor.send,
            CronTrigger(timezone="UTC", **fields),
            id=job_id,
            name=actor.actor_name,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
    return scheduler


async def run() -> None:
    global scheduler_instance
    scheduler_instance = create_scheduler()
    scheduler_instance.start()
    logger.info(f"Scheduler started with {len(SCHEDULE)} jobs")

    runner = await start_health_server(scheduler_instance, port=settings.health_check_port)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        await stop.wait()
    finally:
        scheduler_instance.shutdown(wait=False)
        logger.info("Scheduler stopped")
        await stop_health_server(runner)


if __name__ == "__main__":
    setup_logging("scheduler")
    asyncio.run(run())
