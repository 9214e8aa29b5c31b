"""
Balance checker.

USDC (6 decimals) and native POL balances.
"""

import asyncio
from decimal import Decimal

from eth_utils import to_checksum_address
from loguru import logger
from web3 import AsyncWeb3
from web3.contract import AsyncContract
from web3.exceptions import Web3Exception

from academy.config.constants import BLOCKCHAIN_TIMEOUT, USDC_DECIMALS
from academy.utils.security import mask_address


class BalanceChecker:
    """Reads wallet balances with timeouts."""

    def __init__(self, web3: AsyncWeb3, usdc_contract: AsyncContract):
        self.web3 = web3
        self.usdc_contract = usdc_contract

    async def get_usdc_balance_raw(self, address: str) -> int | None:
        """
        USDC balance in base units (1 USDC = 10**6).

        Returns:
            Raw balance or None on RPC failure
        """
        try:
            checksum = to_checksum_address(address)
            return await asyncio.wait_for(
                self.usdc_contract.functions.balanceOf(checksum).call(),
                timeout=BLOCKCHAIN_TIMEOUT,
            )
        except TimeoutError:
            logger.error(f"Timeout getting USDC balance for {mask_address(address)}")
            return None
        except (Web3Exception, ValueError, ConnectionError, OSError) as e:
            logger.error(f"Error getting USDC balance for {mask_address(address)}: {e}")
            return None

    async def get_usdc_balance(self, address: str) -> Decimal | None:
        """USDC balance as a Decimal."""
        raw = await self.get_usdc_balance_raw(address)
        if raw is None:
            return None
        return Decimal(raw) / Decimal(10**USDC_DECIMALS)

    async def get_pol_balance(self, address: str) -> Decimal | None:
        """Native POL balance (for gas)."""
        try:
            checksum = to_checksum_address(address)
            balance_wei = await asyncio.wait_for(
                self.web3.eth.get_balance(checksum),
                timeout=BLOCKCHAIN_TIMEOUT,
            )
        except TimeoutError:
            logger.error(f"Timeout getting POL balance for {mask_address(address)}")
            return None
        except (Web3Exception, ValueError, ConnectionError, OSError) as e:
            logger.error(f"Error getting POL balance for {mask_address(address)}: {e}")
            return None

        return Decimal(str(self.web3.from_wei(balance_wei, "ether")))
