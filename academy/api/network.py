"""Admin network and member routes."""

from dataclasses import asdict

from aiohttp import web

from academy.repositories.user_repository import UserRepository
from academy.services.network import NetworkQueryService
from academy.services.treasury import TreasuryService
from academy.utils.exceptions import NotFoundError

from .keys import SESSION_MAKER
from .params import int_param
from .serializers import json_response

routes = web.RouteTableDef()


async def _load_user(session, user_id: int):
    user = await UserRepository(session).get_by_id(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


@routes.get("/network/{user_id}/tree-children")
async def tree_children(request: web.Request) -> web.Response:
    """The three slots under a member, with fill statistics."""
    user_id = int_param(request, "user_id")
    async with request.app[SESSION_MAKER]() as session:
        user = await _load_user(session, user_id)
        if not user.network_position_id:
            raise ValueError(f"User {user_id} has no network position")
        slots = await NetworkQueryService(session).get_tree_children(
            user.network_position_id, viewer_id=user.id
        )

    filled = sum(1 for s in slots if s.is_filled)
    direct = sum(1 for s in slots if s.is_direct_referral)
    return json_response({
        "position_id": user.network_position_id,
        "tree_children": [asdict(s) for s in slots],
        "stats": {
            "total_slots": len(slots),
            "filled_slots": filled,
            "empty_slots": len(slots) - filled,
            "direct_referral_slots": direct,
            "spillover_slots": filled - direct,
            "is_full": filled == len(slots),
        },
    })


@routes.get("/network/{user_id}/upline")
async def upline(request: web.Request) -> web.Response:
    user_id = int_param(request, "user_id")
    async with request.app[SESSION_MAKER]() as session:
        user = await _load_user(session, user_id)
        if not user.network_position_id:
            raise ValueError(f"User {user_id} has no network position")
        chain = await NetworkQueryService(session).get_upline_chain(
            user.network_position_id
        )
    return json_response({"position_id": user.network_position_id, "upline": chain})


@routes.post("/members/{user_id}/deposit-address")
async def deposit_address(request: web.Request) -> web.Response:
    """Allocate (or return) a member's USDC deposit address."""
    user_id = int_param(request, "user_id")
    async with request.app[SESSION_MAKER]() as session:
        user = await _load_user(session, user_id)
        result = await TreasuryService(session).generate_deposit_address(user)
        await session.commit()
    return json_response(result, status=201 if result["created"] else 200)
