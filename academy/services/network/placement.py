"""
Network placement.

Assigns tree positions to newly unlocked members. A referrer's new members
rotate across its three branches; inside a branch the shallowest free slot
wins, left to right.
"""

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config.constants import (
    PLACEMENT_MAX_DEPTH,
    ROOT_LEVEL,
    ROOT_POSITION,
)
from academy.models.user import User
from academy.repositories.user_repository import UserRepository
from academy.services.network.positions import (
    branch_root,
    branch_rotation,
    format_position_id,
    get_ancestor_position_ids,
    get_parent_position,
    next_branch,
    positions_at_relative_depth,
)
from academy.utils.exceptions import PositionAssignmentError

# Transaction-scoped advisory lock serialising placements
PLACEMENT_ADVISORY_LOCK_ID = 7_310_001


class NetworkPlacementService:
    """Place users in the ternary tree."""

    def __init__(
        self, session: AsyncSession, max_depth: int = PLACEMENT_MAX_DEPTH
    ) -> None:
        self.session = session
        self.max_depth = max_depth
        self.user_repo = UserRepository(session)

    async def assign_network_position(
        self, user_id: int, referrer_id: int | None = None
    ) -> str:
        """
        Give a user a network position.

        Args:
            user_id: User to place
            referrer_id: Referrer whose subtree receives the user

        Returns:
            Assigned position id

        Raises:
            PositionAssignmentError: user missing, referrer missing or
                unpositioned, or no free slot within max_depth
        """
        await self.session.execute(
            select(func.pg_advisory_xact_lock(PLACEMENT_ADVISORY_LOCK_ID))
        )

        user = await self.user_repo.get_for_update(user_id)
        if user is None:
            raise PositionAssignmentError(f"User {user_id} not found")
        if user.network_position_id:
            return user.network_position_id

        if not await self.user_repo.has_positioned_users():
            self._place(user, ROOT_LEVEL, ROOT_POSITION, parent_id=None)
            await self.session.flush()
            logger.success(f"User {user_id} placed at tree root")
            return user.network_position_id

        if referrer_id is None:
            raise PositionAssignmentError(
                f"User {user_id} needs a referrer to join the network"
            )

        referrer = await self.user_repo.get_for_update(referrer_id)
        if referrer is None or not referrer.network_position_id:
            raise PositionAssignmentError(
                f"Referrer {referrer_id} has no network position"
            )

        level, position, branch = await self._find_slot(referrer)
        parent_position = get_parent_position(position, level)
        parent_id = format_position_id(level - 1, parent_position)

        self._place(user, level, position, parent_id=parent_id)
        referrer.last_referral_branch = branch
        await self.session.flush()

        ancestor_ids = await self.user_repo.find_ids_by_position_ids(
            get_ancestor_position_ids(user.network_position_id)
        )
        await self.user_repo.increment_total_network_count(ancestor_ids)

        logger.success(
            f"User {user_id} placed at {user.network_position_id} "
            f"(referrer {referrer_id}, branch {branch})",
            extra={"ancestors": len(ancestor_ids)},
        )
        return user.network_position_id

    async def _find_slot(self, referrer: User) -> tuple[int, int, int]:
        """
        Find (level, position, branch) for the referrer's next member.

        Starts with the next branch in rotation and falls back to the others
        when a branch is full down to max_depth.
        """
        start = next_branch(referrer.last_referral_branch)

        for branch in branch_rotation(start):
            subtree_root = branch_root(referrer.network_position, branch)
            for depth in range(self.max_depth):
                level = referrer.network_level + 1 + depth
                candidates = positions_at_relative_depth(subtree_root, depth)
                occupied = await self.user_repo.find_occupied_positions(
                    level, candidates[0], candidates[-1]
                )
                if len(occupied) >= len(candidates):
                    continue
                for position in candidates:
                    if position not in occupied:
                        return level, position, branch

            logger.warning(
                f"Branch {branch} under {referrer.network_position_id} is full, "
                "trying next branch"
            )

        raise PositionAssignmentError(
            f"No available position under {referrer.network_position_id} "
            f"within depth {self.max_depth}"
        )

    @staticmethod
    def _place(
        user: User, level: int, position: int, parent_id: str | None
    ) -> None:
        user.network_level = level
        user.network_position = position
        user.network_position_id = format_position_id(level, position)
        user.tree_parent_network_position_id = parent_id
