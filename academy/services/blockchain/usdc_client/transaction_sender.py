"""
Transaction sender.

Builds, signs and broadcasts USDC transfers and native POL transfers.
"""

import asyncio
from decimal import ROUND_DOWN, Decimal
from typing import Any

from eth_account import Account
from eth_utils import to_checksum_address
from loguru import logger
from web3 import AsyncWeb3
from web3.contract import AsyncContract
from web3.exceptions import Web3Exception

from academy.config.constants import (
    BLOCKCHAIN_RECEIPT_TIMEOUT,
    BLOCKCHAIN_TIMEOUT,
    DEFAULT_MAX_FEE_GWEI,
    MAX_GAS_PRICE_GWEI,
    NATIVE_TRANSFER_GAS_LIMIT,
    USDC_DECIMALS,
)
from academy.utils.security import mask_address, mask_tx_hash

from ..constants import DEFAULT_TOKEN_GAS_LIMIT, GAS_ESTIMATE_BUFFER, MIN_PRIORITY_FEE_GWEI
from .nonce_manager import NonceManager
from .transaction_status import TransactionStatusChecker


def usdc_to_raw(amount: Decimal) -> int:
    """USDC amount to base units, rounding down."""
    return int(
        (Decimal(str(amount)) * Decimal(10**USDC_DECIMALS)).to_integral_value(ROUND_DOWN)
    )


def raw_to_usdc(raw: int) -> Decimal:
    """Base units to USDC."""
    return Decimal(raw) / Decimal(10**USDC_DECIMALS)


class TransactionSender:
    """
    Signs and sends transactions.

    Every call returns a result dict {"success", "tx_hash", "error", ...}
    instead of raising.
    """

    def __init__(
        self,
        web3: AsyncWeb3,
        usdc_contract: AsyncContract,
        nonce_manager: NonceManager,
        status_checker: TransactionStatusChecker,
    ):
        self.web3 = web3
        self.usdc_contract = usdc_contract
        self.nonce_manager = nonce_manager
        self.status_checker = status_checker
        # Serialises nonce use per process
        self._nonce_lock = asyncio.Lock()

    async def get_fee_params(self) -> dict[str, int]:
        """
        Gas price fields for a new transaction.

        EIP-1559 when the latest block has a base fee, legacy gasPrice
        otherwise. Fees are capped at MAX_GAS_PRICE_GWEI.
        """
        max_fee_cap = self.web3.to_wei(MAX_GAS_PRICE_GWEI, "gwei")

        latest = await asyncio.wait_for(
            self.web3.eth.get_block("latest"), timeout=BLOCKCHAIN_TIMEOUT
        )
        base_fee = latest.get("baseFeePerGas")

        if base_fee is None:
            gas_price = await asyncio.wait_for(
                self.web3.eth.gas_price, timeout=BLOCKCHAIN_TIMEOUT
            )
            return {"gasPrice": min(gas_price, max_fee_cap)}

        try:
            priority_fee = await asyncio.wait_for(
                self.web3.eth.max_priority_fee, timeout=BLOCKCHAIN_TIMEOUT
            )
        except (TimeoutError, Web3Exception):
            priority_fee = 0
        priority_fee = max(priority_fee, self.web3.to_wei(MIN_PRIORITY_FEE_GWEI, "gwei"))

        max_fee = min(base_fee * 2 + priority_fee, max_fee_cap)
        return {
            "maxFeePerGas": max_fee,
            "maxPriorityFeePerGas": min(priority_fee, max_fee),
        }

    async def get_max_fee_per_gas(self) -> int:
        """Current maxFeePerGas in wei, DEFAULT_MAX_FEE_GWEI on failure."""
        try:
            params = await self.get_fee_params()
        except (TimeoutError, Web3Exception, ConnectionError, OSError) as e:
            logger.warning(f"Fee data unavailable, using {DEFAULT_MAX_FEE_GWEI} gwei: {e}")
            return self.web3.to_wei(DEFAULT_MAX_FEE_GWEI, "gwei")
        return params.get("maxFeePerGas") or params["gasPrice"]

    async def send_usdc(
        self,
        private_key: str,
        to_address: str,
        amount_raw: int,
        gas_limit: int | None = None,
        nonce: int | None = None,
        wait: bool = True,
    ) -> dict[str, Any]:
        """
        Send an ERC-20 USDC transfer.

        Args:
            private_key: Sender key
            to_address: Recipient
            amount_raw: Amount in base units
            gas_limit: Fixed gas limit (estimated with a 20% buffer if None)
            nonce: Explicit nonce (pending nonce if None)
            wait: Wait for the receipt

        Returns:
            Result dict with success, tx_hash, error, status and receipt fields
        """
        if amount_raw <= 0:
            return {"success": False, "tx_hash": None, "error": "Amount must be positive"}

        try:
            to_checksum = to_checksum_address(to_address)
        except ValueError as e:
            return {"success": False, "tx_hash": None, "error": f"Invalid address: {e}"}

        sender = Account.from_key(private_key).address
        transfer_function = self.usdc_contract.functions.transfer(to_checksum, amount_raw)

        if gas_limit is None:
            try:
                estimate = await asyncio.wait_for(
                    transfer_function.estimate_gas({"from": sender}),
                    timeout=BLOCKCHAIN_TIMEOUT,
                )
                gas_limit = int(estimate * GAS_ESTIMATE_BUFFER)
            except (TimeoutError, Web3Exception, ValueError, ConnectionError, OSError) as e:
                logger.warning(f"Gas estimation failed ({e}), using {DEFAULT_TOKEN_GAS_LIMIT}")
                gas_limit = DEFAULT_TOKEN_GAS_LIMIT

        logger.info(
            f"Sending {raw_to_usdc(amount_raw)} USDC "
            f"{mask_address(sender)} -> {mask_address(to_checksum)}"
        )

        async def build(tx_nonce: int) -> dict[str, Any]:
            fee_params = await self.get_fee_params()
            return await asyncio.wait_for(
                transfer_function.build_transaction(
                    {"from": sender, "gas": gas_limit, "nonce": tx_nonce, **fee_params}
                ),
                timeout=BLOCKCHAIN_TIMEOUT,
            )

        return await self._sign_and_send(private_key, sender, build, nonce, wait)

    async def send_native(
        self,
        private_key: str,
        to_address: str,
        amount_pol: Decimal,
        gas_limit: int = NATIVE_TRANSFER_GAS_LIMIT,
        nonce: int | None = None,
        wait: bool = False,
    ) -> dict[str, Any]:
        """
        Send native POL (gas funding).

        Args:
            private_key: Sender key
            to_address: Recipient
            amount_pol: Amount in POL
            gas_limit: Gas limit (21000 for plain transfers)
            nonce: Explicit nonce for back-to-back sends
            wait: Wait for the receipt
        """
        try:
            to_checksum = to_checksum_address(to_address)
        except ValueError as e:
            return {"success": False, "tx_hash": None, "error": f"Invalid address: {e}"}

        sender = Account.from_key(private_key).address
        value = self.web3.to_wei(Decimal(str(amount_pol)), "ether")

        async def build(tx_nonce: int) -> dict[str, Any]:
            fee_params = await self.get_fee_params()
            chain_id = await asyncio.wait_for(
                self.web3.eth.chain_id, timeout=BLOCKCHAIN_TIMEOUT
            )
            return {
                "from": sender,
                "to": to_checksum,
                "value": value,
                "gas": gas_limit,
                "nonce": tx_nonce,
                "chainId": chain_id,
                **fee_params,
            }

        return await self._sign_and_send(private_key, sender, build, nonce, wait)

    async def _sign_and_send(
        self,
        private_key: str,
        sender: str,
        build,
        nonce: int | None,
        wait: bool,
    ) -> dict[str, Any]:
        try:
            async with self._nonce_lock:
                if nonce is None:
                    nonce = await self.nonce_manager.get_pending_nonce(sender)
                transaction = await build(nonce)

                account = Account.from_key(private_key)
                try:
                    signed_tx = account.sign_transaction(transaction)
                finally:
                    del account

                tx_hash = await asyncio.wait_for(
                    self.web3.eth.send_raw_transaction(signed_tx.raw_transaction),
                    timeout=BLOCKCHAIN_TIMEOUT,
                )
        except TimeoutError:
            logger.error(f"Timeout sending transaction from {mask_address(sender)}")
            return {"success": False, "tx_hash": None, "error": "Timeout sending transaction"}
        except (Web3Exception, ValueError, ConnectionError, OSError) as e:
            logger.error(f"Error sending transaction from {mask_address(sender)}: {e}")
            return {"success": False, "tx_hash": None, "error": str(e)}

        tx_hash_hex = self.web3.to_hex(tx_hash)
        logger.info(f"Transaction sent: {mask_tx_hash(tx_hash_hex)} (nonce {nonce})")

        if not wait:
            return {
                "success": True,
                "tx_hash": tx_hash_hex,
                "error": None,
                "status": "pending",
                "nonce": nonce,
            }

        try:
            receipt = await asyncio.wait_for(
                self.web3.eth.wait_for_transaction_receipt(tx_hash),
                timeout=BLOCKCHAIN_RECEIPT_TIMEOUT,
            )
        except TimeoutError:
            # Not a failure: the transaction may still confirm
            logger.warning(f"Transaction {mask_tx_hash(tx_hash_hex)} confirmation timeout")
            return {
                "success": False,
                "tx_hash": tx_hash_hex,
                "error": "Transaction confirmation timeout - check status later",
                "status": "pending",
                "nonce": nonce,
            }

        summary = self.status_checker.summarize_receipt(receipt)
        if summary["status"] != 1:
            return {
                "success": False,
                "tx_hash": tx_hash_hex,
                "error": "Transaction reverted",
                "status": "failed",
                "nonce": nonce,
                **summary,
            }

        return {
            "success": True,
            "tx_hash": tx_hash_hex,
            "error": None,
            "nonce": nonce,
            **summary,
            "status": "confirmed",
        }
