"""Unit tests for commission rates, structures and withdrawal rules."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from academy.services.commission.rules import (
    MAX_COMMISSION_VOLUME,
    calculate_capped_earnings,
    calculate_commission_rate,
    calculate_gross_earnings,
    calculate_required_referrals,
    calculate_structure_number,
    can_withdraw,
    is_active,
    is_disabled,
    is_qualified,
)

NOW = datetime(2026, 3, 15, tzinfo=UTC)


class TestCommissionRate:
    """Rate tiers by active network size."""

    @pytest.mark.parametrize(
        "active, rate",
        [
            (0, "0.10"),
            (1091, "0.10"),
            (1092, "0.11"),
            (2184, "0.12"),
            (3276, "0.13"),
            (4368, "0.14"),
            (5460, "0.15"),
            (6552, "0.16"),
            (100000, "0.16"),
        ],
    )
    def test_tiers(self, active, rate):
        assert calculate_commission_rate(active) == Decimal(rate)


class TestStructures:
    """Structure number and required referrals."""

    def test_first_structure(self):
        assert calculate_structure_number(0) == 1
        assert calculate_structure_number(1091) == 1

    def test_second_structure(self):
        assert calculate_structure_number(1092) == 2

    def test_structure_capped_at_seven(self):
        assert calculate_structure_number(10**6) == 7

    def test_required_referrals(self):
        assert calculate_required_referrals(1) == 3
        assert calculate_required_referrals(7) == 21


class TestActivity:
    """33 day active window and 90 day disable window."""

    def test_recent_payment_is_active(self):
        assert is_active(NOW - timedelta(days=10), NOW) is True

    def test_payment_on_boundary_is_active(self):
        assert is_active(NOW - timedelta(days=33), NOW) is True

    def test_old_payment_is_inactive(self):
        assert is_active(NOW - timedelta(days=34), NOW) is False

    def test_never_paid_is_inactive_and_disabled(self):
        assert is_active(None, NOW) is False
        assert is_disabled(None, NOW) is True

    def test_disabled_after_ninety_days(self):
        assert is_disabled(NOW - timedelta(days=91), NOW) is True
        assert is_disabled(NOW - timedelta(days=60), NOW) is False


class TestCanWithdraw:
    """Withdrawal eligibility."""

    def test_eligible(self):
        result = can_withdraw(NOW - timedelta(days=1), 1, 3, NOW)
        assert result.can_withdraw is True
        assert result.deficit == 0
        assert result.reason == "Eligible to withdraw"

    def test_referral_deficit(self):
        result = can_withdraw(NOW - timedelta(days=1), 2, 4, NOW)
        assert result.can_withdraw is False
        assert result.required_referrals == 6
        assert result.deficit == 2
        assert result.reason == "Need 2 more direct referrals"

    def test_inactive_account(self):
        result = can_withdraw(NOW - timedelta(days=40), 1, 10, NOW)
        assert result.can_withdraw is False
        assert "not active" in result.reason


class TestEarnings:
    """Gross and capped residual earnings."""

    def test_gross_rounds_to_cents(self):
        assert calculate_gross_earnings(Decimal("1990"), Decimal("0.10")) == Decimal("199.00")
        assert calculate_gross_earnings(Decimal("0.125"), Decimal("0.10")) == Decimal("0.01")

    def test_cap_applies_above_limit(self):
        volume = MAX_COMMISSION_VOLUME + Decimal("10000")
        assert calculate_capped_earnings(volume, Decimal("0.16")) == (
            MAX_COMMISSION_VOLUME * Decimal("0.16")
        ).quantize(Decimal("0.01"))

    def test_cap_value(self):
        assert MAX_COMMISSION_VOLUME == Decimal("1303848.00")

    def test_cap_not_applied_below_limit(self):
        assert calculate_capped_earnings(Decimal("1000"), Decimal("0.10")) == Decimal("100.00")


class TestQualification:
    """Three active direct referrals qualify a member."""

    def test_qualified(self):
        assert is_qualified(3) is True

    def test_not_qualified(self):
        assert is_qualified(2) is False
