"""
Exception handling utilities.

Domain exceptions and the categories used to decide how a failure is
handled (logged and skipped, or re-raised).
"""

from sqlalchemy.exc import OperationalError
from stripe import StripeError
from web3.exceptions import Web3Exception


class SecurityError(Exception):
    """Raised when a security-critical operation fails."""
    pass


class WebhookSignatureError(SecurityError):
    """Webhook payload signature missing or invalid."""
    pass


class TreasuryConfigurationError(Exception):
    """Treasury wallet, gas tank or master key is not configured."""
    pass


class PositionAssignmentError(Exception):
    """No network position could be assigned."""
    pass


class NotFoundError(LookupError):
    """Requested record does not exist."""
    pass


class PayoutValidationError(ValueError):
    """Payout request rejected before any money moves."""
    pass


class PayoutBatchStateError(Exception):
    """Payout batch is not in the status required by the operation."""

    def __init__(self, batch_id: int, expected: str, current: str | None) -> None:
        self.batch_id = batch_id
        self.expected = expected
        self.current = current
        super().__init__(
            f"Payout batch {batch_id} must be {expected} "
            f"(current status: {current or 'missing'})"
        )


# Must log but can continue - a single item fails, the batch goes on
MUST_LOG = (
    OperationalError,  # Database errors
    Web3Exception,     # Blockchain RPC errors
    StripeError,       # Stripe API errors
)

# Must raise - validation issues
MUST_RAISE = (
    ValueError,
    TypeError,
)


def must_log(exc: Exception) -> bool:
    """Check if exception is a recoverable, loggable failure."""
    return isinstance(exc, MUST_LOG)


def must_raise(exc: Exception) -> bool:
    """Check if exception must be propagated."""
    return isinstance(exc, MUST_RAISE)
