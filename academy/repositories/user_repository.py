"""
User repository.

Data access layer for User model: tree occupancy, upline updates, sweep
candidates and subscription lapses.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.enums import PaymentSchedule
from academy.models.user import User
from academy.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> User | None:
        """Get user by e-mail (case-insensitive)."""
        stmt = select(User).where(func.lower(User.email) == email.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_deposit_address(self, address: str) -> User | None:
        """
        Find the owner of a deposit address (case-insensitive).

        Args:
            address: Deposit address (any case)

        Returns:
            User or None
        """
        if not address:
            return None
        stmt = select(User).where(
            func.lower(User.deposit_address) == address.lower()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_position_id(self, position_id: str) -> User | None:
        """Get the user occupying a network position."""
        return await self.get_by(network_position_id=position_id)

    async def get_by_stripe_customer_id(self, customer_id: str) -> User | None:
        """Get user by Stripe customer id."""
        return await self.get_by(stripe_customer_id=customer_id)

    async def find_by_ids(self, user_ids: Iterable[int]) -> list[User]:
        """Users by primary key."""
        ids = list(user_ids)
        if not ids:
            return []
        stmt = select(User).where(User.id.in_(ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_for_update(self, user_id: int) -> User | None:
        """Load a user with a row lock."""
        stmt = select(User).where(User.id == user_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def has_positioned_users(self) -> bool:
        """True once anyone holds a network position."""
        stmt = select(User.id).where(User.network_position_id.is_not(None)).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def find_occupied_positions(
        self, level: int, first: int, last: int
    ) -> set[int]:
        """
        Occupied positions on a level within [first, last].

        One query per tree depth during placement.
        """
        stmt = select(User.network_position).where(
            User.network_level == level,
            User.network_position.between(first, last),
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def find_by_position_ids(
        self, position_ids: Sequence[str]
    ) -> list[User]:
        """Users occupying any of the given positions."""
        if not position_ids:
            return []
        stmt = select(User).where(User.network_position_id.in_(position_ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_ids_by_position_ids(
        self, position_ids: Sequence[str]
    ) -> list[int]:
        """Ids of users occupying any of the given positions."""
        if not position_ids:
            return []
        stmt = select(User.id).where(User.network_position_id.in_(position_ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def increment_total_network_count(self, user_ids: Iterable[int]) -> int:
        """Add one to total_network_count for each user."""
        return await self.update_ids(
            user_ids, total_network_count=User.total_network_count + 1
        )

    async def adjust_active_network_count(
        self, user_ids: Iterable[int], delta: int
    ) -> int:
        """Shift active_network_count by delta, never below zero."""
        return await self.update_ids(
            user_ids,
            active_network_count=func.greatest(User.active_network_count + delta, 0),
        )

    async def add_current_month_volume(
        self, user_ids: Iterable[int], amount: Decimal
    ) -> int:
        """Add amount to sniper_volume_current_month in one UPDATE."""
        return await self.update_ids(
            user_ids,
            sniper_volume_current_month=User.sniper_volume_current_month + amount,
        )

    async def count_direct_referrals(self, user_id: int) -> int:
        """Users whose referred_by is this user."""
        return await self.count(referred_by=user_id)

    async def count_active_direct_referrals(self, user_id: int) -> int:
        """Direct referrals whose membership is currently active."""
        stmt = select(func.count()).select_from(User).where(
            User.referred_by == user_id,
            User.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def find_positioned(self) -> list[User]:
        """All users placed in the tree."""
        stmt = (
            select(User)
            .where(User.network_position_id.is_not(None))
            .order_by(User.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_with_previous_volume(self) -> list[User]:
        """Positioned users with last month's volume above zero."""
        stmt = (
            select(User)
            .where(
                User.network_position_id.is_not(None),
                User.sniper_volume_previous_month > 0,
            )
            .order_by(User.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def archive_current_volumes(self) -> int:
        """Copy current month volume into previous month for positioned users."""
        return await self.update_where(
            User.network_position_id.is_not(None),
            sniper_volume_previous_month=User.sniper_volume_current_month,
        )

    async def reset_current_volumes(self) -> int:
        """Zero the current month volume for positioned users."""
        return await self.update_where(
            User.network_position_id.is_not(None),
            sniper_volume_current_month=Decimal("0"),
        )

    async def find_sweep_candidates(
        self, statuses: Sequence[str], limit: int
    ) -> list[User]:
        """
        Users with a deposit address in one of the sweep statuses.

        A NULL sweep_status counts as idle. Never checked addresses come
        first, then the ones checked longest ago.
        """
        stmt = (
            select(User)
            .where(
                User.deposit_address.is_not(None),
                or_(User.sweep_status.in_(statuses), User.sweep_status.is_(None)),
            )
            .order_by(User.sweep_identified_at.asc().nulls_first(), User.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_sweep_status(
        self,
        status: str,
        limit: int,
        largest_balance_first: bool = False,
    ) -> list[User]:
        """Users in a sweep status, optionally by cached USDC balance desc."""
        stmt = select(User).where(
            User.sweep_status == status,
            User.deposit_address.is_not(None),
        )
        if largest_balance_first:
            stmt = stmt.order_by(User.sweep_usdc_balance.desc().nulls_last())
        else:
            stmt = stmt.order_by(User.id)
        stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_lapsed_subscribers(
        self,
        monthly_cutoff: datetime,
        weekly_cutoff: datetime,
        superadmin_role: str,
    ) -> list[User]:
        """
        Active unlocked members whose subscription payment is overdue.

        Bypassed members and superadmins are never returned.
        """
        overdue = or_(
            User.last_payment_date.is_(None),
            and_(
                User.payment_schedule == PaymentSchedule.WEEKLY,
                User.last_payment_date < weekly_cutoff,
            ),
            and_(
                User.payment_schedule != PaymentSchedule.WEEKLY,
                User.last_payment_date < monthly_cutoff,
            ),
        )
        stmt = select(User).where(
            User.initial_payment_completed.is_(True),
            User.is_active.is_(True),
            User.bypass_subscription.is_(False),
            User.role != superadmin_role,
            overdue,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
