"""
Unit tests for the USDC client components.

Web3 is mocked at the `eth` namespace; signing uses a real test key.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound, Web3Exception, Web3RPCError

from academy.config.constants import USDC_CONTRACT_MAINNET
from academy.services.blockchain.constants import DEFAULT_TOKEN_GAS_LIMIT
from academy.services.blockchain.usdc_client import UsdcClient, raw_to_usdc, usdc_to_raw

# Hardhat account #0
SENDER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
RECIPIENT = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"


async def _value(value):
    return value


@pytest.fixture
def client(mock_web3_provider):
    mock_web3_provider.from_wei = AsyncWeb3.from_wei
    mock_web3_provider.to_wei = AsyncWeb3.to_wei
    mock_web3_provider.to_hex = AsyncWeb3.to_hex
    return UsdcClient(mock_web3_provider, USDC_CONTRACT_MAINNET)


class TestAmounts:
    """Base unit conversion."""

    def test_rounds_down(self):
        assert usdc_to_raw(Decimal("1.9999999")) == 1_999_999
        assert usdc_to_raw(Decimal("240.7675")) == 240_767_500

    def test_raw_to_usdc(self):
        assert raw_to_usdc(24_077_000) == Decimal("24.077")


class TestBalances:
    """BalanceChecker through the facade."""

    @pytest.mark.asyncio
    async def test_pol_balance(self, client):
        assert await client.get_pol_balance(RECIPIENT) == Decimal("1")

    @pytest.mark.asyncio
    async def test_usdc_balance(self, client):
        client.usdc_contract.functions.balanceOf.return_value.call = AsyncMock(
            return_value=2_500_000
        )

        assert await client.get_usdc_balance(RECIPIENT) == Decimal("2.5")

    @pytest.mark.asyncio
    async def test_rpc_error_is_none(self, client):
        client.usdc_contract.functions.balanceOf.return_value.call = AsyncMock(
            side_effect=Web3Exception("rpc down")
        )

        assert await client.get_usdc_balance(RECIPIENT) is None


class TestReceipts:
    """TransactionStatusChecker."""

    @pytest.mark.asyncio
    async def test_summary(self, client):
        receipt = await client.get_receipt("0x" + "ab" * 32)

        assert receipt == {
            "status": 1,
            "block_number": 12345,
            "gas_used": 21000,
            "gas_fee_pol": Decimal("0.00063"),
        }

    @pytest.mark.asyncio
    async def test_not_mined(self, client, mock_web3_provider):
        mock_web3_provider.eth.get_transaction_receipt = AsyncMock(
            side_effect=TransactionNotFound("not found")
        )

        assert await client.get_receipt("0x" + "ab" * 32) is None


class TestSending:
    """Fee selection and signing."""

    @pytest.fixture
    def chain(self, mock_web3_provider):
        eth = mock_web3_provider.eth
        eth.get_block = AsyncMock(return_value={"baseFeePerGas": 30 * 10**9})
        eth.max_priority_fee = _value(30 * 10**9)
        eth.chain_id = _value(137)
        eth.send_raw_transaction = AsyncMock(return_value=bytes.fromhex("cd" * 32))
        return eth

    @pytest.mark.asyncio
    async def test_send_native_pending(self, client, chain):
        result = await client.send_native(SENDER_KEY, RECIPIENT, Decimal("0.15"))

        assert result["success"] is True
        assert result["status"] == "pending"
        assert result["tx_hash"] == "0x" + "cd" * 32
        assert result["nonce"] == 3
        chain.send_raw_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_explicit_nonce_skips_lookup(self, client, chain):
        result = await client.send_native(
            SENDER_KEY, RECIPIENT, Decimal("0.15"), nonce=11
        )

        assert result["nonce"] == 11
        chain.get_transaction_count.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_broadcast_error_is_result(self, client, chain):
        chain.send_raw_transaction = AsyncMock(side_effect=Web3Exception("nonce too low"))

        result = await client.send_native(SENDER_KEY, RECIPIENT, Decimal("0.15"))

        assert result["success"] is False
        assert "nonce too low" in result["error"]

    @pytest.mark.asyncio
    async def test_rpc_error_during_gas_estimate_uses_default_limit(self, client, chain):
        transfer_call = client.usdc_contract.functions.transfer.return_value
        transfer_call.estimate_gas = AsyncMock(
            side_effect=Web3RPCError("insufficient funds for gas * price + value")
        )
        transfer_call.build_transaction = AsyncMock(
            side_effect=lambda params: {
                **params,
                "to": client.usdc_contract_address,
                "data": "0x",
                "value": 0,
                "chainId": 137,
            }
        )

        result = await client.transfer(
            SENDER_KEY, RECIPIENT, amount_usdc=Decimal("5"), wait=False
        )

        assert result["success"] is True
        built = transfer_call.build_transaction.await_args.args[0]
        assert built["gas"] == DEFAULT_TOKEN_GAS_LIMIT

    @pytest.mark.asyncio
    async def test_zero_transfer_rejected(self, client):
        result = await client.transfer(SENDER_KEY, RECIPIENT, amount_usdc=Decimal("0"))

        assert result["success"] is False

    @pytest.mark.asyncio
    async def test_transfer_needs_amount(self, client):
        with pytest.raises(ValueError):
            await client.transfer(SENDER_KEY, RECIPIENT)

    @pytest.mark.asyncio
    async def test_fee_fallback(self, client, mock_web3_provider):
        mock_web3_provider.eth.get_block = AsyncMock(side_effect=Web3Exception("down"))

        assert await client.get_max_fee_per_gas() == 100 * 10**9
