"""
Shared plumbing for sweep stages.
"""

import time
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from academy.repositories.user_repository import UserRepository
from academy.services.audit_service import AuditService
from academy.services.blockchain.usdc_client import UsdcClient
from academy.services.treasury import TreasuryService


class SweepStage:
    """
    Base class for one stage of the deposit sweep.

    Stages process a bounded batch of users per run, record per-user
    failures on the user row and never raise for a single user.
    Stages that broadcast commit each user right after the send, so a
    later crash cannot roll back a transaction already on chain.
    """

    name = "sweep"

    def __init__(
        self,
        session: AsyncSession,
        usdc_client: UsdcClient,
        treasury: TreasuryService | None = None,
    ) -> None:
        self.session = session
        self.usdc_client = usdc_client
        self.treasury = treasury or TreasuryService(session)
        self.user_repo = UserRepository(session)
        self.audit = AuditService(session)
        self._started = time.monotonic()

    def start_timer(self) -> None:
        self._started = time.monotonic()

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._started) * 1000)

    @staticmethod
    def empty_summary(**counts: int) -> dict[str, Any]:
        """Summary for a run with nothing to do."""
        return {"processed": 0, **counts, "results": []}
