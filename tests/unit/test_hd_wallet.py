"""Unit tests for deposit address derivation."""

import pytest

from academy.services.treasury.hd_wallet import (
    derivation_path,
    derive_address,
    derive_private_key,
    master_xprv_from_mnemonic,
    verify_derived_address,
)
from academy.utils.exceptions import SecurityError

# BIP-39 test vector mnemonic
TEST_MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)
# m/44'/60'/0'/0/0 for the mnemonic above
FIRST_ADDRESS = "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"


@pytest.fixture(scope="module")
def xprv():
    return master_xprv_from_mnemonic(TEST_MNEMONIC)


class TestMasterKey:
    """Account-level xprv from a mnemonic."""

    def test_xprv_format(self, xprv):
        assert xprv.startswith("xprv")

    def test_whitespace_is_normalized(self, xprv):
        messy = "  " + TEST_MNEMONIC.replace(" ", "   ") + "\n"
        assert master_xprv_from_mnemonic(messy) == xprv

    def test_invalid_mnemonic_rejected(self):
        with pytest.raises(ValueError):
            master_xprv_from_mnemonic("abandon " * 11 + "abandon")

    def test_passphrase_changes_key(self, xprv):
        assert master_xprv_from_mnemonic(TEST_MNEMONIC, "secret") != xprv


class TestDerivation:
    """Child keys of the account-level xprv."""

    def test_known_first_address(self, xprv):
        assert derive_address(xprv, 0) == FIRST_ADDRESS

    def test_indexes_give_distinct_addresses(self, xprv):
        addresses = {derive_address(xprv, i) for i in range(1, 6)}
        assert len(addresses) == 5

    def test_private_key_is_hex(self, xprv):
        key = derive_private_key(xprv, 1)
        assert key.startswith("0x")
        assert len(key) == 66

    def test_negative_index_rejected(self, xprv):
        with pytest.raises(ValueError):
            derive_private_key(xprv, -1)

    def test_malformed_xprv_rejected(self):
        with pytest.raises(ValueError):
            derive_private_key("xprv-not-a-key", 1)

    def test_derivation_path(self):
        assert derivation_path(12) == "m/44'/60'/0'/0/12"


class TestVerifyDerivedAddress:
    """Key/address consistency check before signing sweeps."""

    def test_matching_address_case_insensitive(self, xprv):
        key = derive_private_key(xprv, 0)
        assert verify_derived_address(key, FIRST_ADDRESS.lower()) == FIRST_ADDRESS

    def test_mismatch_raises(self, xprv):
        key = derive_private_key(xprv, 1)
        with pytest.raises(SecurityError):
            verify_derived_address(key, FIRST_ADDRESS)
