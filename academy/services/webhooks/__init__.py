"""Inbound webhook processing (Alchemy deposits, Stripe events)."""

from .alchemy import UsdcTransfer, parse_usdc_transfers, verify_alchemy_signature
from .deposit_processor import DepositProcessor
from .stripe_events import StripeEventHandler

__all__ = [
    "DepositProcessor",
    "StripeEventHandler",
    "UsdcTransfer",
    "parse_usdc_transfers",
    "verify_alchemy_signature",
]
