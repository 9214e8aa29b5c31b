#!/usr/bin/env python3
"""
Store the treasury master key.

Reads a BIP-39 mnemonic from stdin, derives the account-level xprv
(m/44'/60'/0'/0), stores it Fernet-encrypted in treasury_settings and
optionally records the treasury wallet address.

Usage:
    python scripts/setup_treasury.py [--treasury-address 0x...] [--force] < mnemonic.txt
"""

import argparse
import asyncio
import getpass
import sys

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from academy.config.settings import settings
from academy.models.treasury_setting import TreasurySetting
from academy.repositories.treasury_setting_repository import TreasurySettingRepository
from academy.services.treasury import TreasuryService
from academy.services.treasury.hd_wallet import derive_address, master_xprv_from_mnemonic
from academy.utils.security import mask_address

logger.remove()
logger.add(sys.stderr, level="INFO")


def _read_mnemonic() -> str:
    if sys.stdin.isatty():
        return getpass.getpass("Mnemonic: ")
    return sys.stdin.read()


async def setup_treasury(mnemonic: str, treasury_address: str | None, force: bool) -> None:
    xprv = master_xprv_from_mnemonic(mnemonic)

    engine = create_async_engine(settings.async_database_url)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        async with session_maker() as session:
            repo = TreasurySettingRepository(session)
            if await repo.get_value(TreasurySetting.MASTER_WALLET_XPRV) and not force:
                logger.error("Master key already configured, pass --force to replace it")
                return

            await TreasuryService(session).store_master_xprv(xprv)
            if treasury_address:
                await repo.set_value(
                    TreasurySetting.TREASURY_WALLET_ADDRESS, treasury_address.lower()
                )
            await session.commit()
    finally:
        await engine.dispose()

    logger.success(
        f"Master key stored; first deposit address {mask_address(derive_address(xprv, 1))}"
    )


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--treasury-address", help="Sweep destination address")
    parser.add_argument("--force", action="store_true", help="Replace an existing key")
    args = parser.parse_args()

    if not settings.encryption_key:
        logger.error("ENCRYPTION_KEY must be set before storing key material")
        sys.exit(1)

    try:
        mnemonic = _read_mnemonic()
        asyncio.run(setup_treasury(mnemonic, args.treasury_address, args.force))
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
