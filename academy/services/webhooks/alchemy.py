"""
Alchemy address-activity webhooks.

Signature verification and extraction of USDC transfers.
"""

import hashlib
import hmac
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from academy.config.constants import USDC_DECIMALS
from academy.config.settings import settings
from academy.utils.security import constant_time_equals

ADDRESS_ACTIVITY = "ADDRESS_ACTIVITY"
TOKEN_CATEGORIES = ("erc20", "token")


@dataclass(frozen=True)
class UsdcTransfer:
    """A USDC transfer seen by the webhook."""

    from_address: str
    to_address: str
    amount_raw: int
    amount_usdc: Decimal
    tx_hash: str
    block_number: int | None


def verify_alchemy_signature(
    body: bytes | str, signature: str | None, signing_key: str | None
) -> bool:
    """HMAC-SHA256 hex digest of the raw body, compared in constant time."""
    if not signature or not signing_key:
        return False
    if isinstance(body, str):
        body = body.encode()
    expected = hmac.new(signing_key.encode(), body, hashlib.sha256).hexdigest()
    return constant_time_equals(signature, expected)


def _parse_int(value: Any, default: int | None = None) -> int | None:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    text = str(value)
    return int(text, 16) if text.lower().startswith("0x") else int(text)


def parse_usdc_transfers(
    payload: dict[str, Any], usdc_contract: str | None = None
) -> list[UsdcTransfer]:
    """
    USDC transfers in an ADDRESS_ACTIVITY payload.

    Other webhook types, non-token activity and other tokens are ignored.
    """
    if payload.get("type") != ADDRESS_ACTIVITY:
        return []

    contract = (usdc_contract or settings.usdc_contract_address or "").lower()
    activities = (payload.get("event") or {}).get("activity") or []
    transfers = []

    for activity in activities:
        if activity.get("category") not in TOKEN_CATEGORIES:
            continue
        raw_contract = activity.get("rawContract") or {}
        if (raw_contract.get("address") or "").lower() != contract:
            continue

        amount_raw = _parse_int(raw_contract.get("rawValue"), 0)
        transfers.append(
            UsdcTransfer(
                from_address=(activity.get("fromAddress") or "").lower(),
                to_address=(activity.get("toAddress") or "").lower(),
                amount_raw=amount_raw,
                amount_usdc=Decimal(amount_raw) / Decimal(10**USDC_DECIMALS),
                tx_hash=(activity.get("hash") or "").lower(),
                block_number=_parse_int(activity.get("blockNum")),
            )
        )

    return transfers
