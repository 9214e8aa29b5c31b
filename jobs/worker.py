"""
Dramatiq worker entry module.

Usage:
    dramatiq jobs.worker
"""

from academy.config.logging import setup_logging
from jobs.tasks import (  # noqa: F401
    gas_tank_check,
    monthly_volumes,
    payout_batches,
    subscription_check,
    sweep,
)

setup_logging("worker")
