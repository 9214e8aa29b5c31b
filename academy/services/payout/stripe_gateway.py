"""
Stripe gateway.

Thin async wrapper over the synchronous stripe SDK calls the back office
needs. Calls run in a worker thread.
"""

import asyncio
from decimal import Decimal
from typing import Any

import stripe

from academy.config.settings import settings
from academy.utils.exceptions import TreasuryConfigurationError, WebhookSignatureError


class StripeGateway:
    """Stripe balance, Connect accounts, transfers and webhook events."""

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
    ) -> None:
        self.api_key = api_key or settings.stripe_secret_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret

    def _require_key(self) -> str:
        if not self.api_key:
            raise TreasuryConfigurationError("STRIPE_SECRET_KEY not configured")
        return self.api_key

    async def get_available_usd(self) -> Decimal:
        """Available USD platform balance in dollars."""
        balance = await asyncio.to_thread(
            stripe.Balance.retrieve, api_key=self._require_key()
        )
        for entry in balance["available"]:
            if entry["currency"] == "usd":
                return Decimal(entry["amount"]) / 100
        return Decimal("0")

    async def retrieve_account(self, account_id: str) -> Any:
        """Connect account (payouts_enabled tells if a bank is verified)."""
        return await asyncio.to_thread(
            stripe.Account.retrieve, account_id, api_key=self._require_key()
        )

    async def create_transfer(
        self,
        amount_cents: int,
        destination: str,
        transfer_group: str,
        metadata: dict[str, str],
    ) -> Any:
        """USD transfer to a Connect account."""
        return await asyncio.to_thread(
            stripe.Transfer.create,
            amount=amount_cents,
            currency="usd",
            destination=destination,
            transfer_group=transfer_group,
            metadata=metadata,
            api_key=self._require_key(),
        )

    def construct_event(self, payload: bytes, signature: str | None) -> Any:
        """
        Verify and parse a webhook payload.

        Raises:
            WebhookSignatureError: Missing secret, header or bad signature
        """
        if not self.webhook_secret:
            raise WebhookSignatureError("STRIPE_WEBHOOK_SECRET not configured")
        if not signature:
            raise WebhookSignatureError("Missing Stripe-Signature header")
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(f"Invalid Stripe signature: {e}") from e
        except ValueError as e:
            raise WebhookSignatureError(f"Invalid Stripe payload: {e}") from e
