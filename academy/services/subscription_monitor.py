"""
Subscription monitor.

Deactivates members whose subscription payment is overdue: 33 days for
monthly billing and 10 days for weekly billing.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.constants import MONTHLY_GRACE_DAYS, WEEKLY_GRACE_DAYS
from academy.models.enums import NotificationType, UserRole
from academy.repositories.user_repository import UserRepository
from academy.services.network import NetworkQueryService
from academy.services.notification_service import NotificationService


class SubscriptionMonitor:
    """Daily lapse check."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.user_repo = UserRepository(session)
        self.network = NetworkQueryService(session)
        self.notifications = NotificationService(session)

    async def check_lapsed(self, now: datetime | None = None) -> dict[str, Any]:
        """
        Deactivate overdue members and notify them.

        Each deactivation removes the member from their upline's active
        network count.

        Returns:
            {"checked_at", "deactivated", "user_ids"}
        """
        now = now or datetime.now(UTC)
        lapsed = await self.user_repo.find_lapsed_subscribers(
            monthly_cutoff=now - timedelta(days=MONTHLY_GRACE_DAYS),
            weekly_cutoff=now - timedelta(days=WEEKLY_GRACE_DAYS),
            superadmin_role=UserRole.SUPERADMIN,
        )

        deactivated = []
        for user in lapsed:
            user.is_active = False
            await self.session.flush()
            if user.network_position_id:
                await self.network.decrement_upchain_active_count(user.id)

            await self.notifications.enqueue(
                user_id=user.id,
                notification_type=NotificationType.ACCOUNT_INACTIVE,
                data={
                    "last_payment_date": (
                        user.last_payment_date.isoformat()
                        if user.last_payment_date else None
                    ),
                    "payment_schedule": user.payment_schedule,
                },
                idempotency_key=f"account_inactive:{user.id}:{now.date().isoformat()}",
            )
            deactivated.append(user.id)

        if deactivated:
            logger.warning(f"Deactivated {len(deactivated)} lapsed members")
        else:
            logger.info("No lapsed members")

        return {
            "checked_at": now.isoformat(),
            "deactivated": len(deactivated),
            "user_ids": deactivated,
        }
