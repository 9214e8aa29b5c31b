"""
Security utilities.

Masking helpers for logs and constant-time comparison for tokens and
webhook signatures.
"""

import hmac


def mask_address(address: str | None) -> str:
    """
    Mask wallet address for logging: 0x1234...5678

    Examples:
        >>> mask_address("0x1234567890abcdef1234567890abcdef12345678")
        '0x1234...5678'
        >>> mask_address(None)
        '***'
    """
    if not address or len(address) < 10:
        return "***"
    return f"{address[:6]}...{address[-4:]}"


def mask_tx_hash(tx_hash: str | None) -> str:
    """Mask transaction hash: first 10 and last 6 characters."""
    if not tx_hash or len(tx_hash) < 16:
        return "***"
    return f"{tx_hash[:10]}...{tx_hash[-6:]}"


def mask_sensitive(value: str | None, show_chars: int = 4) -> str:
    """
    Mask a secret-ish string (account ids, tokens).

    Args:
        value: Value to mask
        show_chars: Characters kept at each end

    Returns:
        Masked value or '***' if too short
    """
    if not value or len(value) <= show_chars * 2:
        return "***"
    return f"{value[:show_chars]}...{value[-show_chars:]}"


def mask_private_key(key: str | None) -> str:
    """Private keys and xprvs never appear in logs, even partially."""
    return "***MASKED***" if key else "***"


def constant_time_equals(left: str | None, right: str | None) -> bool:
    """Compare two secrets without leaking timing information."""
    if not left or not right:
        return False
    return hmac.compare_digest(left.encode(), right.encode())
