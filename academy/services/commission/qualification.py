"""
Referral activation and qualification.

A member qualifies for residual payouts once three of their direct
referrals are active. Residual earned before that accumulates on the
member and qualification is never revoked.
"""

from datetime import UTC, datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.enums import ReferralStatus
from academy.models.user import User
from academy.repositories.referral_repository import ReferralRepository
from academy.repositories.user_repository import UserRepository
from academy.services.commission.rules import (
    WithdrawalEligibility,
    calculate_commission_rate,
    calculate_structure_number,
    can_withdraw,
    is_qualified,
)


class QualificationService:
    """Keeps referral counts, qualification and rate tiers current."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.user_repo = UserRepository(session)
        self.referral_repo = ReferralRepository(session)

    def refresh_network_stats(self, user: User) -> User:
        """Recompute rate and structure from the active network count."""
        active = user.active_network_count or 0
        user.current_commission_rate = calculate_commission_rate(active)
        user.current_structure_number = calculate_structure_number(active)
        return user

    async def activate_referral(self, referred_user: User) -> User | None:
        """
        Mark the referral of a newly unlocked member active.

        Returns:
            The referrer, or None when the user was not referred
        """
        if referred_user.referred_by is None:
            return None

        referral = await self.referral_repo.get_pair(
            referred_user.referred_by, referred_user.id
        )
        now = datetime.now(UTC)
        if referral is None:
            referral = await self.referral_repo.create(
                referrer_id=referred_user.referred_by,
                referred_id=referred_user.id,
                status=ReferralStatus.ACTIVE,
                initial_payment_status="completed",
                activated_at=now,
            )
        elif referral.status != ReferralStatus.ACTIVE:
            referral.status = ReferralStatus.ACTIVE
            referral.initial_payment_status = "completed"
            referral.activated_at = now
            await self.session.flush()

        return await self.update_referrer_qualification(referred_user.referred_by)

    async def update_referrer_qualification(self, referrer_id: int) -> User | None:
        """
        Refresh a referrer's direct referral count and qualification.

        Returns:
            Updated referrer, None if missing
        """
        referrer = await self.user_repo.get_by_id(referrer_id)
        if referrer is None:
            logger.warning(f"Referrer {referrer_id} not found")
            return None

        referrer.direct_referrals_count = await self.referral_repo.count(
            referrer_id=referrer_id, status=ReferralStatus.ACTIVE
        )
        active_directs = await self.user_repo.count_active_direct_referrals(referrer_id)

        if is_qualified(active_directs) and not referrer.qualified:
            referrer.qualified = True
            referrer.qualified_at = datetime.now(UTC)
            logger.success(
                f"User {referrer_id} qualified with {active_directs} active referrals"
            )

        await self.session.flush()
        return referrer

    async def accumulate_residual(self, user: User, amount: Decimal) -> bool:
        """
        Hold residual for a member who has not qualified yet.

        Returns:
            True if the amount was accumulated, False if the member is qualified
        """
        if user.qualified:
            return False
        user.accumulated_residual = (user.accumulated_residual or Decimal("0")) + amount
        await self.session.flush()
        logger.info(f"Accumulated ${amount} residual for unqualified user {user.id}")
        return True

    async def get_withdrawal_eligibility(
        self, user: User, now: datetime | None = None
    ) -> WithdrawalEligibility:
        """can_withdraw for a loaded user."""
        direct_referrals = await self.user_repo.count_direct_referrals(user.id)
        return can_withdraw(
            user.last_payment_date,
            user.current_structure_number,
            direct_referrals,
            now,
        )
