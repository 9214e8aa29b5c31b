"""
Sweep gas funding.

Sends POL from the gas tank to deposit addresses that cannot pay for
their own USDC transfer.
"""

from datetime import UTC, datetime
from typing import Any

from loguru import logger
from web3.exceptions import Web3Exception

from academy.config.constants import (
    GAS_FUNDING_AMOUNT_POL,
    NATIVE_TRANSFER_GAS_LIMIT,
    SWEEP_FUND_BATCH_SIZE,
)
from academy.models.enums import SweepStatus
from academy.services.audit_service import AuditEvent
from academy.utils.security import mask_address

from .base import SweepStage


class SweepFunder(SweepStage):
    """needs_funding -> funding_sent | failed."""

    name = "fund"

    async def run(self, batch_size: int = SWEEP_FUND_BATCH_SIZE) -> dict[str, Any]:
        """
        Broadcast gas funding without waiting for confirmations.

        The gas tank nonce is read once and incremented locally so the
        batch goes out back to back.

        Returns:
            {"processed", "funded", "failed", "tx_hashes", "results"}

        Raises:
            TreasuryConfigurationError: Gas tank key missing
        """
        self.start_timer()
        gas_tank_key = self.treasury.get_gas_tank_key()

        users = await self.user_repo.find_by_sweep_status(
            SweepStatus.NEEDS_FUNDING, batch_size, largest_balance_first=True
        )
        if not users:
            logger.info("Sweep fund: no users need funding")
            return {**self.empty_summary(funded=0, failed=0), "tx_hashes": []}

        gas_tank_address = self.usdc_client.address_from_key(gas_tank_key)
        try:
            nonce = await self.usdc_client.get_pending_nonce(gas_tank_address)
        except (TimeoutError, Web3Exception) as e:
            logger.error(f"Sweep fund: cannot read gas tank nonce: {e}")
            return {
                **self.empty_summary(funded=0, failed=0),
                "tx_hashes": [],
                "error": f"Nonce unavailable: {e}",
            }

        funded = 0
        failed = 0
        tx_hashes: list[str] = []
        results: list[dict[str, Any]] = []

        for user in users:
            result = await self.usdc_client.send_native(
                private_key=gas_tank_key,
                to_address=user.deposit_address,
                amount_pol=GAS_FUNDING_AMOUNT_POL,
                gas_limit=NATIVE_TRANSFER_GAS_LIMIT,
                nonce=nonce,
                wait=False,
            )

            if result["success"]:
                nonce += 1
                user.sweep_status = SweepStatus.FUNDING_SENT
                user.sweep_funding_tx = result["tx_hash"]
                user.sweep_funded_at = datetime.now(UTC)
                funded += 1
                tx_hashes.append(result["tx_hash"])
                logger.info(
                    f"Funded {mask_address(user.deposit_address)} with "
                    f"{GAS_FUNDING_AMOUNT_POL} POL"
                )
            else:
                user.sweep_status = SweepStatus.FAILED
                user.sweep_error = result.get("error") or "Funding failed"
                failed += 1
                logger.error(
                    f"Funding {mask_address(user.deposit_address)} failed: "
                    f"{user.sweep_error}"
                )

            results.append(
                {
                    "user_id": user.id,
                    "success": result["success"],
                    "tx_hash": result.get("tx_hash"),
                    "error": result.get("error"),
                }
            )
            await self.session.commit()

        await self.audit.log(
            AuditEvent.SWEEP_FUND_COMPLETED,
            details={
                "users_processed": len(users),
                "funded": funded,
                "failed": failed,
                "amount_per_user": str(GAS_FUNDING_AMOUNT_POL),
                "tx_hashes": tx_hashes,
                "duration_ms": self.elapsed_ms(),
            },
            entity_type="treasury",
        )
        logger.info(f"Sweep fund: funded {funded}, failed {failed}")
        return {
            "processed": len(users),
            "funded": funded,
            "failed": failed,
            "tx_hashes": tx_hashes,
            "results": results,
        }
