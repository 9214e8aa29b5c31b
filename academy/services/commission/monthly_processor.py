"""
Monthly volume processing.

Runs on the first of the month: archive last month's volumes, create
residual commissions from them, then reset the running volume.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.enums import CommissionStatus, CommissionType, NotificationType
from academy.repositories.commission_repository import CommissionRepository
from academy.repositories.user_repository import UserRepository
from academy.repositories.volume_history_repository import VolumeHistoryRepository
from academy.services.audit_service import AuditEvent, AuditService
from academy.services.commission.qualification import QualificationService
from academy.services.commission.rules import (
    calculate_capped_earnings,
    calculate_gross_earnings,
    is_active,
)
from academy.services.notification_service import NotificationService


def previous_period(now: datetime) -> str:
    """YYYY-MM of the month before `now`."""
    last_month = now.replace(day=1) - timedelta(days=1)
    return last_month.strftime("%Y-%m")


def step_result(
    step: str,
    success: bool,
    count: int = 0,
    amount: Decimal = Decimal("0"),
    message: str = "",
) -> dict[str, Any]:
    """One entry of the processing report."""
    return {
        "step": step,
        "success": success,
        "count": count,
        "amount": amount,
        "message": message,
    }


class MonthlyVolumeProcessor:
    """Archive, commission and reset monthly sniper volumes."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.user_repo = UserRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.history_repo = VolumeHistoryRepository(session)
        self.qualification = QualificationService(session)
        self.notifications = NotificationService(session)

    async def archive_monthly_volumes(
        self, now: datetime | None = None
    ) -> dict[str, Any]:
        """
        Snapshot every positioned user's month into volume_history and
        move current volume to previous month.
        """
        now = now or datetime.now(UTC)
        period = previous_period(now)
        users = await self.user_repo.find_positioned()
        total_volume = Decimal("0")

        for user in users:
            self.qualification.refresh_network_stats(user)
            volume = user.sniper_volume_current_month or Decimal("0")
            rate = user.current_commission_rate
            total_volume += volume
            await self.history_repo.upsert(
                user_id=user.id,
                period=period,
                personal_volume=volume,
                total_network_count=user.total_network_count,
                active_network_count=user.active_network_count,
                direct_referrals_count=user.direct_referrals_count,
                commission_rate=rate,
                structure_number=user.current_structure_number,
                gross_earnings=calculate_gross_earnings(volume, rate),
                capped_earnings=calculate_capped_earnings(volume, rate),
                can_withdraw=is_active(user.last_payment_date, now),
            )

        archived = await self.user_repo.archive_current_volumes()
        logger.info(f"Archived {archived} user volumes for {period}")
        return step_result(
            "Archive", True, archived, total_volume, f"Archived {archived} user volumes"
        )

    async def create_monthly_commissions(
        self, now: datetime | None = None
    ) -> dict[str, Any]:
        """
        Residual commissions from last month's volume.

        Eligible members get a pending residual_monthly commission.
        Unqualified members who cannot withdraw have the amount accumulated.
        """
        now = now or datetime.now(UTC)
        period = previous_period(now)
        users = await self.user_repo.find_with_previous_volume()
        created = 0
        ineligible = 0
        total = Decimal("0")

        for user in users:
            earnings = calculate_capped_earnings(
                user.sniper_volume_previous_month, user.current_commission_rate
            )
            eligibility = await self.qualification.get_withdrawal_eligibility(user, now)

            if not eligibility.can_withdraw:
                ineligible += 1
                if earnings > 0:
                    await self.qualification.accumulate_residual(user, earnings)
                logger.debug(f"User {user.id} ineligible: {eligibility.reason}")
                continue
            if earnings <= 0:
                continue

            commission = await self.commission_repo.create(
                referrer_id=user.id,
                commission_type=CommissionType.RESIDUAL_MONTHLY,
                amount=earnings,
                description=(
                    f"Residual {period}: ${user.sniper_volume_previous_month} "
                    f"x {user.current_commission_rate}"
                ),
                status=CommissionStatus.PENDING,
            )
            await self.notifications.enqueue(
                user_id=user.id,
                notification_type=NotificationType.MONTHLY_COMMISSION,
                data={"amount": str(earnings), "period": period},
                idempotency_key=f"monthly_commission:{commission.id}",
            )
            created += 1
            total += earnings

        logger.info(f"Created {created} residual commissions (${total}) for {period}")
        return step_result(
            "Commissions",
            True,
            created,
            total,
            f"Created {created} commissions, {ineligible} ineligible",
        )

    async def reset_monthly_volumes(self) -> dict[str, Any]:
        """Zero the running month volume."""
        reset = await self.user_repo.reset_current_volumes()
        return step_result("Reset", True, reset, message=f"Reset {reset} user volumes to $0")

    async def process_monthly_volumes(
        self, now: datetime | None = None
    ) -> list[dict[str, Any]]:
        """
        Run archive, commissions and reset in order.

        Each step runs in a savepoint; processing stops at the first failure
        and later steps are not attempted. A period that already has volume
        history is not processed again.

        Returns:
            One step_result per attempted step
        """
        now = now or datetime.now(UTC)
        period = previous_period(now)
        if await self.history_repo.exists(period=period):
            logger.warning(f"Volumes for {period} already archived, skipping")
            return [
                step_result("Archive", False, message=f"Period {period} already archived")
            ]

        steps = (
            ("Archive", lambda: self.archive_monthly_volumes(now)),
            ("Commissions", lambda: self.create_monthly_commissions(now)),
            ("Reset", self.reset_monthly_volumes),
        )
        results: list[dict[str, Any]] = []

        for name, run in steps:
            try:
                async with self.session.begin_nested():
                    result = await run()
            except Exception as e:
                logger.exception(f"Monthly processing step {name} failed: {e}")
                results.append(step_result(name, False, message=f"{name} failed: {e}"))
                break
            results.append(result)

        await AuditService(self.session).log(
            AuditEvent.MONTHLY_VOLUMES_PROCESSED,
            details={
                "period": period,
                "steps": [
                    {**r, "amount": str(r["amount"])} for r in results
                ],
            },
        )
        return results
