"""
Network queries.

Tree views and upline updates driven by payments.
"""

from dataclasses import dataclass
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.constants import MONTHLY_SUBSCRIPTION_AMOUNT
from academy.repositories.user_repository import UserRepository
from academy.services.network.positions import (
    format_position_id,
    get_ancestor_position_ids,
    get_child_positions,
    parse_position_id,
)


@dataclass
class TreeSlot:
    """One of the three child slots under a position."""

    slot_number: int
    position_id: str
    is_filled: bool
    child_user_id: int | None = None
    child_name: str | None = None
    is_direct_referral: bool = False


class NetworkQueryService:
    """Read the tree and push volume up the chain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.user_repo = UserRepository(session)

    async def get_tree_children(
        self, position_id: str, viewer_id: int | None = None
    ) -> list[TreeSlot]:
        """
        Exactly three slots under a position, filled or not.

        Args:
            position_id: Parent position
            viewer_id: User viewing the tree; marks their direct referrals
        """
        level, position = parse_position_id(position_id)
        child_ids = [
            format_position_id(level + 1, child)
            for child in get_child_positions(position)
        ]
        occupants = {
            user.network_position_id: user
            for user in await self.user_repo.find_by_position_ids(child_ids)
        }

        slots = []
        for slot_number, child_id in enumerate(child_ids, start=1):
            child = occupants.get(child_id)
            slots.append(
                TreeSlot(
                    slot_number=slot_number,
                    position_id=child_id,
                    is_filled=child is not None,
                    child_user_id=child.id if child else None,
                    child_name=child.name if child else None,
                    is_direct_referral=bool(
                        child and viewer_id is not None
                        and child.referred_by == viewer_id
                    ),
                )
            )
        return slots

    async def get_upline_chain(self, position_id: str) -> list[dict]:
        """
        Ancestors of a position, nearest first, ending at the root.

        Returns:
            [{"position_id", "level", "user_id"}], user_id None for
            unoccupied positions
        """
        ancestor_ids = get_ancestor_position_ids(position_id)
        occupants = {
            user.network_position_id: user.id
            for user in await self.user_repo.find_by_position_ids(ancestor_ids)
        }
        return [
            {
                "position_id": ancestor,
                "level": parse_position_id(ancestor)[0],
                "user_id": occupants.get(ancestor),
            }
            for ancestor in ancestor_ids
        ]

    async def _upline_user_ids(self, user_id: int) -> list[int]:
        user = await self.user_repo.get_by_id(user_id)
        if user is None or not user.network_position_id:
            return []
        return await self.user_repo.find_ids_by_position_ids(
            get_ancestor_position_ids(user.network_position_id)
        )

    async def distribute_to_upline(
        self, user_id: int, amount: Decimal = MONTHLY_SUBSCRIPTION_AMOUNT
    ) -> int:
        """
        Add a payment to every ancestor's current month volume.

        The payer's own volume is untouched.

        Returns:
            Number of ancestors credited
        """
        upline_ids = await self._upline_user_ids(user_id)
        if not upline_ids:
            logger.debug(f"User {user_id} has no upline to credit")
            return 0

        updated = await self.user_repo.add_current_month_volume(upline_ids, amount)
        logger.info(
            f"Distributed ${amount} from user {user_id} to {updated} upline members"
        )
        return updated

    async def increment_upchain_active_count(self, user_id: int) -> int:
        """User became active: +1 active member for each ancestor."""
        upline_ids = await self._upline_user_ids(user_id)
        return await self.user_repo.adjust_active_network_count(upline_ids, 1)

    async def decrement_upchain_active_count(self, user_id: int) -> int:
        """User lapsed: -1 active member for each ancestor."""
        upline_ids = await self._upline_user_ids(user_id)
        return await self.user_repo.adjust_active_network_count(upline_ids, -1)
