"""
Commission rules.

Rates, structures and withdrawal eligibility derived from a member's
active network and payment history.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from academy.config.constants import (
    ACTIVE_WINDOW_DAYS,
    BASE_COMMISSION_RATE,
    COMMISSION_RATE_TIERS,
    DISABLED_AFTER_DAYS,
    MAX_COMMISSION_VOLUME_MEMBERS,
    MAX_STRUCTURE_NUMBER,
    MONTHLY_SUBSCRIPTION_AMOUNT,
    QUALIFICATION_DIRECT_REFERRALS,
    REFERRALS_PER_STRUCTURE,
    STRUCTURE_SIZE,
)

CENT = Decimal("0.01")
MAX_COMMISSION_VOLUME = MAX_COMMISSION_VOLUME_MEMBERS * MONTHLY_SUBSCRIPTION_AMOUNT


@dataclass
class WithdrawalEligibility:
    """Result of a can_withdraw check."""

    can_withdraw: bool
    reason: str
    required_referrals: int
    current_referrals: int
    deficit: int


def calculate_commission_rate(active_count: int) -> Decimal:
    """Commission rate tier for an active network size."""
    for minimum, rate in COMMISSION_RATE_TIERS:
        if active_count >= minimum:
            return rate
    return BASE_COMMISSION_RATE


def calculate_structure_number(active_count: int) -> int:
    """Structure number: one per 1092 active members, at most 7."""
    return min(active_count // STRUCTURE_SIZE + 1, MAX_STRUCTURE_NUMBER)


def calculate_required_referrals(structure_number: int) -> int:
    """Direct referrals needed to withdraw at a structure."""
    return structure_number * REFERRALS_PER_STRUCTURE


def is_active(last_payment_date: datetime | None, now: datetime | None = None) -> bool:
    """Paid within the last 33 days."""
    if last_payment_date is None:
        return False
    now = now or datetime.now(UTC)
    return last_payment_date >= now - timedelta(days=ACTIVE_WINDOW_DAYS)


def is_disabled(last_payment_date: datetime | None, now: datetime | None = None) -> bool:
    """Never paid, or last payment more than 90 days ago."""
    if last_payment_date is None:
        return True
    now = now or datetime.now(UTC)
    return last_payment_date < now - timedelta(days=DISABLED_AFTER_DAYS)


def can_withdraw(
    last_payment_date: datetime | None,
    structure_number: int,
    direct_referrals: int,
    now: datetime | None = None,
) -> WithdrawalEligibility:
    """
    Check whether a member may receive residual payouts.

    Args:
        last_payment_date: Member's last subscription payment
        structure_number: Member's current structure (1-7)
        direct_referrals: Number of users the member referred
        now: Reference time (defaults to now)

    Returns:
        WithdrawalEligibility with a human readable reason
    """
    required = calculate_required_referrals(structure_number or 1)
    active = is_active(last_payment_date, now)
    deficit = max(0, required - direct_referrals)

    if not active:
        reason = f"Account not active (must pay within {ACTIVE_WINDOW_DAYS} days)"
    elif deficit:
        reason = f"Need {deficit} more direct referrals"
    else:
        reason = "Eligible to withdraw"

    return WithdrawalEligibility(
        can_withdraw=active and deficit == 0,
        reason=reason,
        required_referrals=required,
        current_referrals=direct_referrals,
        deficit=deficit,
    )


def calculate_gross_earnings(volume: Decimal, rate: Decimal) -> Decimal:
    """Uncapped earnings, rounded to cents."""
    return (Decimal(volume) * rate).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_capped_earnings(volume: Decimal, rate: Decimal) -> Decimal:
    """Earnings on volume capped at 6552 x $199, rounded to cents."""
    capped_volume = min(Decimal(volume), MAX_COMMISSION_VOLUME)
    return (capped_volume * rate).quantize(CENT, rounding=ROUND_HALF_UP)


def is_qualified(active_direct_referrals: int) -> bool:
    """Qualified members (3+ active direct referrals) get residuals paid out."""
    return active_direct_referrals >= QUALIFICATION_DIRECT_REFERRALS
