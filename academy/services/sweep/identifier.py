"""
Sweep identification.

Finds deposit addresses holding USDC and decides whether they can pay
their own gas.
"""

from datetime import UTC, datetime
from typing import Any

from loguru import logger

from academy.config.constants import (
    MIN_GAS_FOR_SWEEP_POL,
    MIN_SWEEP_AMOUNT_USDC,
    SWEEP_IDENTIFY_BATCH_SIZE,
)
from academy.models.enums import SweepStatus
from academy.services.audit_service import AuditEvent
from academy.utils.security import mask_address

from .base import SweepStage


class SweepIdentifier(SweepStage):
    """idle/failed -> ready | needs_funding."""

    name = "identify"

    async def run(self, batch_size: int = SWEEP_IDENTIFY_BATCH_SIZE) -> dict[str, Any]:
        """
        Check balances of idle and failed deposit addresses.

        Returns:
            {"processed", "ready", "needs_funding", "skipped", "errors", "results"}

        Raises:
            TreasuryConfigurationError: Treasury address missing
        """
        self.start_timer()
        await self.treasury.get_treasury_address()

        users = await self.user_repo.find_sweep_candidates(
            [SweepStatus.IDLE, SweepStatus.FAILED], batch_size
        )
        if not users:
            logger.info("Sweep identify: no deposit addresses to check")
            return self.empty_summary(ready=0, needs_funding=0, skipped=0, errors=0)

        counts = {"ready": 0, "needs_funding": 0, "skipped": 0, "errors": 0}
        results: list[dict[str, Any]] = []

        for user in users:
            # last checked, drives rotation through the candidate pool
            user.sweep_identified_at = datetime.now(UTC)
            usdc_balance = await self.usdc_client.get_usdc_balance(user.deposit_address)
            if usdc_balance is None:
                counts["errors"] += 1
                results.append({"user_id": user.id, "action": "error"})
                continue

            if usdc_balance < MIN_SWEEP_AMOUNT_USDC:
                counts["skipped"] += 1
                results.append(
                    {"user_id": user.id, "action": "skip", "usdc_balance": usdc_balance}
                )
                continue

            pol_balance = await self.usdc_client.get_pol_balance(user.deposit_address)
            if pol_balance is not None and pol_balance >= MIN_GAS_FOR_SWEEP_POL:
                new_status = SweepStatus.READY
            else:
                new_status = SweepStatus.NEEDS_FUNDING

            user.sweep_status = new_status
            user.sweep_usdc_balance = usdc_balance
            user.sweep_error = None

            counts[new_status] += 1
            results.append(
                {
                    "user_id": user.id,
                    "action": new_status,
                    "usdc_balance": usdc_balance,
                    "pol_balance": pol_balance,
                }
            )
            logger.debug(
                f"Deposit {mask_address(user.deposit_address)} holds "
                f"{usdc_balance} USDC -> {new_status}"
            )

        await self.session.flush()
        duration = self.elapsed_ms()
        await self.audit.log(
            AuditEvent.SWEEP_IDENTIFY_COMPLETED,
            details={"users_checked": len(users), **counts, "duration_ms": duration},
            entity_type="treasury",
        )
        logger.info(
            f"Sweep identify: checked {len(users)}, ready {counts['ready']}, "
            f"needs funding {counts['needs_funding']}, skipped {counts['skipped']}"
        )
        return {"processed": len(users), **counts, "results": results}
