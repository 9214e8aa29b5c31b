"""
USDC client for Polygon.

Component layout:
- balance_checker.py - USDC and POL balances
- nonce_manager.py - pending nonce with stuck detection
- transaction_sender.py - ERC-20 and native transfers
- transaction_status.py - receipt lookup
- This file - UsdcClient facade over the components
"""

from decimal import Decimal
from typing import Any

from eth_account import Account
from eth_utils import to_checksum_address
from web3 import AsyncWeb3

from academy.config.constants import NATIVE_TRANSFER_GAS_LIMIT

from ..constants import USDC_ABI
from .balance_checker import BalanceChecker
from .nonce_manager import NonceManager
from .transaction_sender import TransactionSender, raw_to_usdc, usdc_to_raw
from .transaction_status import TransactionStatusChecker


class UsdcClient:
    """
    USDC on Polygon.

    Keys are passed per call: the treasury signs with the gas tank, payout
    wallet and derived deposit keys.
    """

    def __init__(self, web3: AsyncWeb3, usdc_contract_address: str) -> None:
        self.web3 = web3
        self.usdc_contract_address = to_checksum_address(usdc_contract_address)
        self.usdc_contract = web3.eth.contract(
            address=self.usdc_contract_address, abi=USDC_ABI
        )

        self._balance_checker = BalanceChecker(web3, self.usdc_contract)
        self._nonce_manager = NonceManager(web3)
        self._status_checker = TransactionStatusChecker(web3)
        self._transaction_sender = TransactionSender(
            web3=web3,
            usdc_contract=self.usdc_contract,
            nonce_manager=self._nonce_manager,
            status_checker=self._status_checker,
        )

    @staticmethod
    def address_from_key(private_key: str) -> str:
        """Checksummed address of a private key."""
        return Account.from_key(private_key).address

    async def get_usdc_balance(self, address: str) -> Decimal | None:
        """USDC balance, None on RPC failure."""
        return await self._balance_checker.get_usdc_balance(address)

    async def get_usdc_balance_raw(self, address: str) -> int | None:
        """USDC balance in base units, None on RPC failure."""
        return await self._balance_checker.get_usdc_balance_raw(address)

    async def get_pol_balance(self, address: str) -> Decimal | None:
        """POL balance, None on RPC failure."""
        return await self._balance_checker.get_pol_balance(address)

    async def get_pending_nonce(self, address: str) -> int:
        """Pending nonce (raises on RPC failure)."""
        return await self._nonce_manager.get_pending_nonce(address)

    async def get_max_fee_per_gas(self) -> int:
        """maxFeePerGas in wei with a default fallback."""
        return await self._transaction_sender.get_max_fee_per_gas()

    async def transfer(
        self,
        private_key: str,
        to_address: str,
        amount_usdc: Decimal | None = None,
        amount_raw: int | None = None,
        gas_limit: int | None = None,
        wait: bool = True,
    ) -> dict[str, Any]:
        """
        Transfer USDC.

        Pass either amount_usdc or amount_raw (base units).
        """
        if amount_raw is None:
            if amount_usdc is None:
                raise ValueError("amount_usdc or amount_raw is required")
            amount_raw = usdc_to_raw(amount_usdc)
        return await self._transaction_sender.send_usdc(
            private_key=private_key,
            to_address=to_address,
            amount_raw=amount_raw,
            gas_limit=gas_limit,
            wait=wait,
        )

    async def send_native(
        self,
        private_key: str,
        to_address: str,
        amount_pol: Decimal,
        gas_limit: int = NATIVE_TRANSFER_GAS_LIMIT,
        nonce: int | None = None,
        wait: bool = False,
    ) -> dict[str, Any]:
        """Send POL, e.g. gas funding for a deposit address."""
        return await self._transaction_sender.send_native(
            private_key=private_key,
            to_address=to_address,
            amount_pol=amount_pol,
            gas_limit=gas_limit,
            nonce=nonce,
            wait=wait,
        )

    async def get_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        """Receipt summary, None while pending."""
        return await self._status_checker.get_receipt(tx_hash)


__all__ = ["UsdcClient", "raw_to_usdc", "usdc_to_raw"]
