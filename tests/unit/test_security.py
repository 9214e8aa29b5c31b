"""Unit tests for masking helpers and constant-time comparison."""

from academy.utils.security import (
    constant_time_equals,
    mask_address,
    mask_private_key,
    mask_sensitive,
    mask_tx_hash,
)


class TestMasking:
    """Values written to logs."""

    def test_mask_address(self):
        assert mask_address("0x1234567890abcdef1234567890abcdef12345678") == "0x1234...5678"

    def test_mask_address_short_or_missing(self):
        assert mask_address(None) == "***"
        assert mask_address("0x123") == "***"

    def test_mask_tx_hash(self, sample_transaction_hash):
        assert mask_tx_hash(sample_transaction_hash) == "0x12345678...abcdef"

    def test_mask_sensitive(self):
        assert mask_sensitive("acct_1234567890") == "acct...7890"
        assert mask_sensitive("short") == "***"

    def test_private_key_never_shown(self):
        assert mask_private_key("0x" + "ab" * 32) == "***MASKED***"
        assert mask_private_key(None) == "***"


class TestConstantTimeEquals:
    """Token and signature comparison."""

    def test_equal(self):
        assert constant_time_equals("abc", "abc") is True

    def test_different(self):
        assert constant_time_equals("abc", "abd") is False

    def test_empty_values_never_match(self):
        assert constant_time_equals("", "") is False
        assert constant_time_equals(None, "abc") is False
