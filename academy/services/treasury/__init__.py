"""Treasury wallets and deposit addresses."""

from academy.services.treasury.treasury_service import TreasuryService

__all__ = ["TreasuryService"]
