"""
Treasury service.

Treasury configuration (master key, treasury address, derivation index)
and deposit address allocation.
"""

from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.settings import settings
from academy.models.treasury_setting import TreasurySetting
from academy.models.user import User
from academy.repositories.treasury_setting_repository import TreasurySettingRepository
from academy.repositories.user_repository import UserRepository
from academy.services.audit_service import AuditEvent, AuditService
from academy.utils.encryption import EncryptionService, get_encryption_service
from academy.utils.exceptions import TreasuryConfigurationError
from academy.utils.security import mask_address

from .hd_wallet import derivation_path, derive_address, derive_private_key


class TreasuryService:
    """Treasury settings and deposit address derivation."""

    def __init__(
        self,
        session: AsyncSession,
        encryption: EncryptionService | None = None,
    ) -> None:
        self.session = session
        self.settings_repo = TreasurySettingRepository(session)
        self.user_repo = UserRepository(session)
        self.encryption = encryption or get_encryption_service()

    async def get_master_xprv(self) -> str:
        """Decrypted account-level xprv."""
        stored = await self.settings_repo.get_value(TreasurySetting.MASTER_WALLET_XPRV)
        if not stored:
            raise TreasuryConfigurationError("Master wallet key not configured")
        return self.encryption.decrypt(stored)

    async def store_master_xprv(self, xprv: str) -> None:
        """Encrypt and persist the account-level xprv."""
        await self.settings_repo.set_value(
            TreasurySetting.MASTER_WALLET_XPRV, self.encryption.encrypt(xprv)
        )

    async def get_treasury_address(self) -> str:
        """Treasury wallet (sweep destination). Env setting wins."""
        address = settings.treasury_wallet_address or await self.settings_repo.get_value(
            TreasurySetting.TREASURY_WALLET_ADDRESS
        )
        if not address:
            raise TreasuryConfigurationError("Treasury wallet address not configured")
        return address

    def get_gas_tank_key(self) -> str:
        """Gas tank private key (funds deposit addresses with POL)."""
        if not settings.gas_tank_private_key:
            raise TreasuryConfigurationError("Gas tank private key not configured")
        return settings.gas_tank_private_key

    def get_payout_wallet_key(self) -> str:
        """Payout wallet private key (pays members in USDC)."""
        if not settings.payout_wallet_private_key:
            raise TreasuryConfigurationError("Payout wallet private key not configured")
        return settings.payout_wallet_private_key

    async def get_settings(self) -> dict[str, Any]:
        """Non-secret treasury settings."""
        index = await self.settings_repo.get_value(
            TreasurySetting.CURRENT_DERIVATION_INDEX
        )
        return {
            "treasury_wallet_address": await self.settings_repo.get_value(
                TreasurySetting.TREASURY_WALLET_ADDRESS
            ),
            "current_derivation_index": int(index or 0),
            "master_key_configured": bool(
                await self.settings_repo.get_value(TreasurySetting.MASTER_WALLET_XPRV)
            ),
        }

    async def derive_deposit_key(self, user: User) -> str:
        """Private key of a user's deposit address."""
        if user.deposit_derivation_index is None:
            raise TreasuryConfigurationError(f"User {user.id} has no deposit address")
        xprv = await self.get_master_xprv()
        return derive_private_key(xprv, user.deposit_derivation_index)

    async def generate_deposit_address(self, user: User) -> dict[str, Any]:
        """
        Give a user their deposit address.

        Existing addresses are returned unchanged. New ones take the next
        derivation index from an atomic counter.

        Returns:
            {"address", "derivation_index", "derivation_path", "created"}
        """
        if user.deposit_address and user.deposit_derivation_index is not None:
            return {
                "address": user.deposit_address,
                "derivation_index": user.deposit_derivation_index,
                "derivation_path": derivation_path(user.deposit_derivation_index),
                "created": False,
            }

        xprv = await self.get_master_xprv()
        index = await self.settings_repo.increment_counter(
            TreasurySetting.CURRENT_DERIVATION_INDEX
        )
        address = derive_address(xprv, index).lower()

        user.deposit_address = address
        user.deposit_derivation_index = index
        await self.session.flush()

        await AuditService(self.session).log(
            AuditEvent.DEPOSIT_ADDRESS_GENERATED,
            details={"address": address, "derivation_path": derivation_path(index)},
            user_id=user.id,
            entity_type="user",
            entity_id=user.id,
        )
        logger.info(
            f"Deposit address {mask_address(address)} assigned to user {user.id} "
            f"(index {index})"
        )
        return {
            "address": address,
            "derivation_index": index,
            "derivation_path": derivation_path(index),
            "created": True,
        }

    async def get_user_by_deposit_address(self, address: str) -> User | None:
        """Owner of a deposit address (case-insensitive)."""
        return await self.user_repo.get_by_deposit_address(address)
