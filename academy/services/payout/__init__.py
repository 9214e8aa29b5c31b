"""
Payout processing.

Component layout:
- batch_builder.py - pending batches from pending commissions
- batch_approval.py - pending -> approved
- batch_executor.py - approved -> processing -> completed (USDC)
- crypto_payouts.py - single commission USDC payout
- stripe_payouts.py - Stripe Connect bulk payouts
- stripe_gateway.py - async wrapper over the stripe SDK
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.constants import ADMIN_BATCH_COMMISSION_LIMIT
from academy.models.payout_batch import PayoutBatch
from academy.services.blockchain.gas_manager import GasManager
from academy.services.blockchain.usdc_client import UsdcClient
from academy.services.treasury import TreasuryService

from .batch_approval import PayoutBatchApprovalService
from .batch_builder import PayoutBatchBuilder
from .batch_executor import PayoutBatchExecutor
from .crypto_payouts import CryptoPayoutService
from .stripe_gateway import StripeGateway
from .stripe_payouts import StripePayoutService


class PayoutService:
    """Facade over batch, single and Stripe payouts."""

    def __init__(
        self,
        session: AsyncSession,
        usdc_client: UsdcClient,
        stripe_gateway: StripeGateway | None = None,
    ) -> None:
        treasury = TreasuryService(session)
        self.builder = PayoutBatchBuilder(session, GasManager(session, usdc_client))
        self.approval = PayoutBatchApprovalService(session)
        self.executor = PayoutBatchExecutor(session, usdc_client, treasury)
        self.crypto = CryptoPayoutService(session, usdc_client, treasury)
        self.stripe = StripePayoutService(session, stripe_gateway or StripeGateway())

    async def create_batch(
        self,
        batch_type: str,
        commission_ids: Sequence[int] | None = None,
        limit: int = ADMIN_BATCH_COMMISSION_LIMIT,
        created_by: int | None = None,
    ) -> dict[str, Any] | None:
        return await self.builder.create_batch(batch_type, commission_ids, limit, created_by)

    async def create_scheduled_batches(self) -> list[PayoutBatch]:
        return await self.builder.create_scheduled_batches()

    async def approve_batch(self, batch_id: int, admin_id: int | None) -> PayoutBatch:
        return await self.approval.approve_batch(batch_id, admin_id)

    async def execute_batch(self, batch_id: int, admin_id: int | None = None) -> dict[str, Any]:
        return await self.executor.execute_batch(batch_id, admin_id)

    async def process_commission_payout(
        self, commission_id: int, admin_id: int | None = None
    ) -> dict[str, Any]:
        return await self.crypto.process_commission_payout(commission_id, admin_id)

    async def process_stripe_bulk(
        self,
        commission_ids: Sequence[int] | None = None,
        admin_id: int | None = None,
    ) -> dict[str, Any]:
        return await self.stripe.process_stripe_bulk(commission_ids, admin_id)


__all__ = [
    "CryptoPayoutService",
    "PayoutBatchApprovalService",
    "PayoutBatchBuilder",
    "PayoutBatchExecutor",
    "PayoutService",
    "StripeGateway",
    "StripePayoutService",
]
