"""
Transaction status checker.

Receipt lookup for sent transactions.
"""

import asyncio
from decimal import Decimal
from typing import Any

from loguru import logger
from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound

from academy.config.constants import BLOCKCHAIN_TIMEOUT
from academy.utils.security import mask_tx_hash


class TransactionStatusChecker:
    """Checks transaction receipts on chain."""

    def __init__(self, web3: AsyncWeb3):
        self.web3 = web3

    async def get_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        """
        Receipt summary for a transaction.

        Returns:
            {"status", "block_number", "gas_used", "gas_fee_pol"}, or None
            while the transaction is not mined

        Raises:
            TimeoutError, Web3Exception: RPC failures (callers treat the
                transaction as still pending)
        """
        try:
            receipt = await asyncio.wait_for(
                self.web3.eth.get_transaction_receipt(tx_hash),
                timeout=BLOCKCHAIN_TIMEOUT,
            )
        except TransactionNotFound:
            logger.debug(f"Transaction {mask_tx_hash(tx_hash)} not mined yet")
            return None

        if receipt is None:
            return None
        return self.summarize_receipt(receipt)

    def summarize_receipt(self, receipt: Any) -> dict[str, Any]:
        """Reduce a web3 receipt to the fields we store."""
        gas_used = receipt["gasUsed"]
        gas_price = receipt.get("effectiveGasPrice") or 0
        return {
            "status": receipt["status"],
            "block_number": receipt["blockNumber"],
            "gas_used": gas_used,
            "gas_fee_pol": Decimal(str(self.web3.from_wei(gas_used * gas_price, "ether"))),
        }
