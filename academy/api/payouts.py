"""Admin payout routes."""

from typing import Any

from aiohttp import web

from academy.config.constants import ADMIN_BATCH_COMMISSION_LIMIT
from academy.services.payout import PayoutService

from .keys import SESSION_MAKER, STRIPE_GATEWAY, USDC_CLIENT_FACTORY
from .params import admin_id, int_param, json_body
from .serializers import json_response

routes = web.RouteTableDef()


def _commission_ids(body: dict[str, Any]) -> list[int] | None:
    ids = body.get("commission_ids")
    if ids is None:
        return None
    if not isinstance(ids, list):
        raise ValueError("commission_ids must be a list")
    return [int(i) for i in ids]


def _service(request: web.Request, session) -> PayoutService:
    return PayoutService(
        session,
        request.app[USDC_CLIENT_FACTORY](),
        request.app[STRIPE_GATEWAY],
    )


@routes.post("/payouts/batches")
async def create_batch(request: web.Request) -> web.Response:
    body = await json_body(request)
    batch_type = body.get("batch_type")
    if not batch_type:
        raise ValueError("batch_type is required")
    limit = int(body.get("limit", ADMIN_BATCH_COMMISSION_LIMIT))

    async with request.app[SESSION_MAKER]() as session:
        result = await _service(request, session).create_batch(
            batch_type,
            commission_ids=_commission_ids(body),
            limit=limit,
            created_by=admin_id(request),
        )
        await session.commit()

    if result is None:
        return json_response(
            {"success": False, "batch": None, "message": "No eligible commissions found"}
        )
    return json_response({"success": True, **result}, status=201)


@routes.post("/payouts/batches/{batch_id}/approve")
async def approve_batch(request: web.Request) -> web.Response:
    batch_id = int_param(request, "batch_id")
    async with request.app[SESSION_MAKER]() as session:
        batch = await _service(request, session).approve_batch(batch_id, admin_id(request))
        await session.commit()
    return json_response({"success": True, "batch": batch})


@routes.post("/payouts/batches/{batch_id}/execute")
async def execute_batch(request: web.Request) -> web.Response:
    batch_id = int_param(request, "batch_id")
    async with request.app[SESSION_MAKER]() as session:
        result = await _service(request, session).execute_batch(batch_id, admin_id(request))
        await session.commit()
    return json_response({"success": True, **result})


@routes.post("/payouts/commissions/{commission_id}/process")
async def process_commission(request: web.Request) -> web.Response:
    commission_id = int_param(request, "commission_id")
    async with request.app[SESSION_MAKER]() as session:
        result = await _service(request, session).process_commission_payout(
            commission_id, admin_id(request)
        )
        await session.commit()
    return json_response(result)


@routes.post("/payouts/stripe/bulk")
async def stripe_bulk(request: web.Request) -> web.Response:
    body = await json_body(request)
    async with request.app[SESSION_MAKER]() as session:
        result = await _service(request, session).process_stripe_bulk(
            _commission_ids(body), admin_id(request)
        )
        await session.commit()
    return json_response({"success": True, **result})
