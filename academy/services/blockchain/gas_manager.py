"""
Gas manager.

Estimates payout gas costs and monitors the gas tank (POL used to fund
sweeps) and the payout wallet (USDC paid to members).
"""

from decimal import ROUND_DOWN, Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.constants import (
    DEFAULT_MAX_FEE_GWEI,
    ERC20_TRANSFER_GAS_ESTIMATE,
    ESTIMATED_POL_PER_TRANSFER,
    GAS_TANK_AUTO_REFILL,
    GAS_TANK_CRITICAL,
    GAS_TANK_LOW_WARNING,
    GAS_TANK_TARGET_BALANCE,
    PAYOUT_WALLET_CRITICAL,
    PAYOUT_WALLET_LOW_WARNING,
)
from academy.config.settings import settings
from academy.services.audit_service import AuditEvent, AuditService
from academy.services.blockchain.usdc_client import UsdcClient
from academy.utils.exceptions import TreasuryConfigurationError
from academy.utils.security import mask_address

WEI_PER_POL = Decimal(10**18)
GWEI = 10**9


class GasTankStatus:
    """Gas tank health levels."""

    HEALTHY = "healthy"
    LOW = "low"
    CRITICAL = "critical"
    REFILL_REQUIRED = "refill_required"
    UNAVAILABLE = "unavailable"


def classify_gas_tank(balance: Decimal) -> str:
    """Map a POL balance to a gas tank status."""
    if balance < GAS_TANK_AUTO_REFILL:
        return GasTankStatus.REFILL_REQUIRED
    if balance < GAS_TANK_CRITICAL:
        return GasTankStatus.CRITICAL
    if balance < GAS_TANK_LOW_WARNING:
        return GasTankStatus.LOW
    return GasTankStatus.HEALTHY


class GasManager:
    """Gas estimates and wallet balance monitoring."""

    def __init__(
        self,
        session: AsyncSession | None,
        usdc_client: UsdcClient,
        matic_price_usd: Decimal | None = None,
    ) -> None:
        self.session = session
        self.usdc_client = usdc_client
        self.matic_price_usd = matic_price_usd or settings.matic_price_usd

    async def estimate_batch_gas(self, transfer_count: int) -> dict[str, Any]:
        """
        Gas cost of a payout batch.

        Args:
            transfer_count: Number of USDC transfers in the batch

        Returns:
            {"gas_per_tx", "max_fee_gwei", "total_pol", "total_usd"}
        """
        max_fee_wei = await self.usdc_client.get_max_fee_per_gas()
        if not max_fee_wei:
            max_fee_wei = DEFAULT_MAX_FEE_GWEI * GWEI

        per_tx_pol = Decimal(ERC20_TRANSFER_GAS_ESTIMATE * max_fee_wei) / WEI_PER_POL
        total_pol = per_tx_pol * transfer_count
        total_usd = (total_pol * self.matic_price_usd).quantize(
            Decimal("0.01"), rounding=ROUND_DOWN
        )

        return {
            "gas_per_tx": ERC20_TRANSFER_GAS_ESTIMATE,
            "max_fee_gwei": Decimal(max_fee_wei) / GWEI,
            "total_pol": total_pol,
            "total_usd": total_usd,
        }

    async def check_gas_tank(self, address: str | None = None) -> dict[str, Any]:
        """
        Check the gas tank POL balance.

        Writes a gas_tank_alert audit entry when the tank is not healthy.

        Args:
            address: Gas tank address (derived from GAS_TANK_PRIVATE_KEY if None)

        Returns:
            Status dict with balance, USD value, refill recommendation
        """
        if address is None:
            if not settings.gas_tank_private_key:
                raise TreasuryConfigurationError("Gas tank private key not configured")
            address = self.usdc_client.address_from_key(settings.gas_tank_private_key)

        balance = await self.usdc_client.get_pol_balance(address)
        if balance is None:
            logger.error(f"Could not read gas tank balance for {mask_address(address)}")
            return {"status": GasTankStatus.UNAVAILABLE, "address": address}

        status = classify_gas_tank(balance)
        refill_needed = status == GasTankStatus.REFILL_REQUIRED
        report = {
            "status": status,
            "address": address,
            "pol_balance": balance,
            "pol_balance_usd": (balance * self.matic_price_usd).quantize(Decimal("0.01")),
            "estimated_transactions_remaining": int(balance / ESTIMATED_POL_PER_TRANSFER),
            "refill_needed": refill_needed,
            "recommended_refill": (
                GAS_TANK_TARGET_BALANCE - balance if refill_needed else Decimal("0")
            ),
        }

        if status == GasTankStatus.HEALTHY:
            logger.info(f"Gas tank healthy: {balance} POL")
            return report

        logger.warning(
            f"Gas tank {status}: {balance} POL at {mask_address(address)}",
            extra={"status": status},
        )
        if self.session is not None:
            await AuditService(self.session).log(
                AuditEvent.GAS_TANK_ALERT,
                details={
                    "status": status,
                    "address": address,
                    "pol_balance": str(balance),
                    "recommended_refill": str(report["recommended_refill"]),
                },
                entity_type="gas_tank",
                entity_id=address,
            )
        return report

    async def check_payout_wallet(self, address: str | None = None) -> dict[str, Any]:
        """
        Check the payout wallet USDC and POL balances.

        Returns:
            {"address", "usdc_balance", "pol_balance", "low_balance_warning",
             "critical_balance_alert"}
        """
        if address is None:
            if not settings.payout_wallet_private_key:
                raise TreasuryConfigurationError("Payout wallet private key not configured")
            address = self.usdc_client.address_from_key(settings.payout_wallet_private_key)

        usdc_balance = await self.usdc_client.get_usdc_balance(address)
        pol_balance = await self.usdc_client.get_pol_balance(address)
        usdc = usdc_balance if usdc_balance is not None else Decimal("0")

        report = {
            "address": address,
            "usdc_balance": usdc_balance,
            "pol_balance": pol_balance,
            "low_balance_warning": usdc < PAYOUT_WALLET_LOW_WARNING,
            "critical_balance_alert": usdc < PAYOUT_WALLET_CRITICAL,
        }
        if report["critical_balance_alert"]:
            logger.error(f"Payout wallet critical: {usdc} USDC")
        elif report["low_balance_warning"]:
            logger.warning(f"Payout wallet low: {usdc} USDC")
        return report
