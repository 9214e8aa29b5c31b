"""
Deposit sweep pipeline.

Stages (each a separate cron job):
- identifier.py - find deposit addresses holding USDC
- funder.py - send POL for gas where needed
- executor.py - transfer USDC to the treasury
- verifier.py - confirm sweep receipts
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from academy.services.blockchain.usdc_client import UsdcClient
from academy.services.treasury import TreasuryService

from .executor import SweepExecutor
from .funder import SweepFunder
from .identifier import SweepIdentifier
from .verifier import SweepVerifier


class SweepService:
    """Facade over the sweep stages."""

    def __init__(self, session: AsyncSession, usdc_client: UsdcClient) -> None:
        treasury = TreasuryService(session)
        self.identifier = SweepIdentifier(session, usdc_client, treasury)
        self.funder = SweepFunder(session, usdc_client, treasury)
        self.executor = SweepExecutor(session, usdc_client, treasury)
        self.verifier = SweepVerifier(session, usdc_client, treasury)

    async def identify(self) -> dict[str, Any]:
        return await self.identifier.run()

    async def fund(self) -> dict[str, Any]:
        return await self.funder.run()

    async def execute(self) -> dict[str, Any]:
        return await self.executor.run()

    async def verify(self) -> dict[str, Any]:
        return await self.verifier.run()


__all__ = [
    "SweepExecutor",
    "SweepFunder",
    "SweepIdentifier",
    "SweepService",
    "SweepVerifier",
]
