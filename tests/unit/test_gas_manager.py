"""Unit tests for gas estimates and wallet monitoring."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from academy.services.audit_service import AuditEvent
from academy.services.blockchain.gas_manager import (
    GasManager,
    GasTankStatus,
    classify_gas_tank,
)
from academy.utils.exceptions import TreasuryConfigurationError

TANK = "0x" + "cc" * 20


class TestClassifyGasTank:
    """POL balance thresholds."""

    @pytest.mark.parametrize(
        "balance,expected",
        [
            ("250", GasTankStatus.HEALTHY),
            ("100", GasTankStatus.HEALTHY),
            ("99.99", GasTankStatus.LOW),
            ("49", GasTankStatus.CRITICAL),
            ("24.5", GasTankStatus.REFILL_REQUIRED),
        ],
    )
    def test_thresholds(self, balance, expected):
        assert classify_gas_tank(Decimal(balance)) == expected


class TestBatchGasEstimate:
    """estimate_batch_gas."""

    @pytest.mark.asyncio
    async def test_scales_with_transfers(self, mock_usdc_client):
        manager = GasManager(None, mock_usdc_client, matic_price_usd=Decimal("0.50"))

        estimate = await manager.estimate_batch_gas(10)

        # 65k gas at 100 gwei = 0.0065 POL per transfer
        assert estimate["total_pol"] == Decimal("0.065")
        assert estimate["max_fee_gwei"] == Decimal("100")
        assert estimate["total_usd"] == Decimal("0.03")

    @pytest.mark.asyncio
    async def test_default_fee_when_node_silent(self, mock_usdc_client):
        mock_usdc_client.get_max_fee_per_gas.return_value = None
        manager = GasManager(None, mock_usdc_client, matic_price_usd=Decimal("1"))

        estimate = await manager.estimate_batch_gas(1)

        assert estimate["max_fee_gwei"] == Decimal("100")


class TestGasTankCheck:
    """check_gas_tank."""

    @pytest.mark.asyncio
    async def test_healthy_tank_not_audited(self, mock_session, mock_usdc_client):
        mock_usdc_client.get_pol_balance.return_value = Decimal("150")
        manager = GasManager(mock_session, mock_usdc_client, matic_price_usd=Decimal("0.5"))

        with patch("academy.services.blockchain.gas_manager.AuditService") as audit_cls:
            report = await manager.check_gas_tank(TANK)

        assert report["status"] == GasTankStatus.HEALTHY
        assert report["pol_balance_usd"] == Decimal("75.00")
        assert report["estimated_transactions_remaining"] == 150_000
        audit_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_refill_recommended(self, mock_session, mock_usdc_client):
        mock_usdc_client.get_pol_balance.return_value = Decimal("20")
        manager = GasManager(mock_session, mock_usdc_client, matic_price_usd=Decimal("0.5"))

        with patch("academy.services.blockchain.gas_manager.AuditService") as audit_cls:
            audit_cls.return_value.log = AsyncMock()
            report = await manager.check_gas_tank(TANK)

        assert report["refill_needed"] is True
        assert report["recommended_refill"] == Decimal("180")
        assert audit_cls.return_value.log.await_args.args[0] == AuditEvent.GAS_TANK_ALERT

    @pytest.mark.asyncio
    async def test_unreadable_balance(self, mock_usdc_client):
        mock_usdc_client.get_pol_balance.return_value = None
        manager = GasManager(None, mock_usdc_client)

        report = await manager.check_gas_tank(TANK)

        assert report["status"] == GasTankStatus.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_missing_key(self, mock_usdc_client):
        manager = GasManager(None, mock_usdc_client)

        with patch("academy.services.blockchain.gas_manager.settings") as settings:
            settings.gas_tank_private_key = None
            with pytest.raises(TreasuryConfigurationError):
                await manager.check_gas_tank()


class TestPayoutWalletCheck:
    """check_payout_wallet."""

    @pytest.mark.asyncio
    async def test_flags(self, mock_usdc_client):
        mock_usdc_client.get_usdc_balance.return_value = Decimal("3000")
        manager = GasManager(None, mock_usdc_client, matic_price_usd=Decimal("0.5"))

        report = await manager.check_payout_wallet(TANK)

        assert report["low_balance_warning"] is True
        assert report["critical_balance_alert"] is False
