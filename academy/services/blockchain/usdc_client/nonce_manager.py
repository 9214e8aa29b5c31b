"""
Nonce management.

Pending nonce lookup with stuck-transaction detection.
"""

import asyncio

from eth_utils import to_checksum_address
from loguru import logger
from web3 import AsyncWeb3

from academy.config.constants import BLOCKCHAIN_TIMEOUT, STUCK_NONCE_THRESHOLD
from academy.utils.security import mask_address


class NonceManager:
    """Reads nonces for signing wallets."""

    def __init__(self, web3: AsyncWeb3):
        self.web3 = web3

    async def get_pending_nonce(self, address: str) -> int:
        """
        Next nonce including pending transactions.

        Logs a warning when many transactions sit unconfirmed.

        Raises:
            TimeoutError: RPC did not answer
            Web3Exception: RPC error
        """
        checksum = to_checksum_address(address)
        pending_nonce = await asyncio.wait_for(
            self.web3.eth.get_transaction_count(checksum, "pending"),
            timeout=BLOCKCHAIN_TIMEOUT,
        )
        confirmed_nonce = await asyncio.wait_for(
            self.web3.eth.get_transaction_count(checksum, "latest"),
            timeout=BLOCKCHAIN_TIMEOUT,
        )

        if pending_nonce > confirmed_nonce + STUCK_NONCE_THRESHOLD:
            logger.warning(
                f"Possible stuck transactions for {mask_address(address)}: "
                f"pending={pending_nonce}, confirmed={confirmed_nonce}"
            )

        return pending_nonce
