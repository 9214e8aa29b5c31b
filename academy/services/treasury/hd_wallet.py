"""
HD wallet derivation for deposit addresses.

The treasury keeps the account-level extended private key for
m/44'/60'/0'/0; deposit address N is its non-hardened child N.
"""

from bip_utils import (
    Bip32KeyError,
    Bip32Slip10Secp256k1,
    Bip44,
    Bip44Changes,
    Bip44Coins,
)
from eth_account import Account
from mnemonic import Mnemonic

from academy.utils.exceptions import SecurityError

DERIVATION_PATH_PREFIX = "m/44'/60'/0'/0"


def derivation_path(index: int) -> str:
    """Full BIP-44 path of a deposit address."""
    return f"{DERIVATION_PATH_PREFIX}/{index}"


def master_xprv_from_mnemonic(words: str, passphrase: str = "") -> str:
    """
    Account-level xprv (m/44'/60'/0'/0) for a BIP-39 mnemonic.

    Raises:
        ValueError: Mnemonic fails the wordlist checksum
    """
    words = " ".join(words.split())
    if not Mnemonic("english").check(words):
        raise ValueError("Invalid mnemonic phrase")

    seed = Mnemonic.to_seed(words, passphrase)
    change_node = (
        Bip44.FromSeed(seed, Bip44Coins.ETHEREUM)
        .Purpose()
        .Coin()
        .Account(0)
        .Change(Bip44Changes.CHAIN_EXT)
    )
    return change_node.PrivateKey().ToExtended()


def derive_private_key(xprv: str, index: int) -> str:
    """
    Private key (0x-prefixed hex) of deposit address `index`.

    Raises:
        ValueError: Negative index or malformed xprv
    """
    if index < 0:
        raise ValueError(f"Derivation index must be non-negative, got {index}")
    try:
        node = Bip32Slip10Secp256k1.FromExtendedKey(xprv)
    except Bip32KeyError as e:
        raise ValueError(f"Invalid extended private key: {e}") from e
    return "0x" + node.ChildKey(index).PrivateKey().Raw().ToHex()


def derive_address(xprv: str, index: int) -> str:
    """Checksummed address of deposit address `index`."""
    return Account.from_key(derive_private_key(xprv, index)).address


def verify_derived_address(private_key: str, expected_address: str) -> str:
    """
    Check that a derived key controls the expected address.

    Returns:
        Checksummed address

    Raises:
        SecurityError: Key does not match the stored address
    """
    address = Account.from_key(private_key).address
    if address.lower() != (expected_address or "").lower():
        raise SecurityError("Derived key does not match deposit address")
    return address
