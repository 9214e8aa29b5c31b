"""Inbound webhook routes."""

import json

from aiohttp import web
from loguru import logger

from academy.config.settings import settings
from academy.services.webhooks import (
    DepositProcessor,
    StripeEventHandler,
    verify_alchemy_signature,
)
from academy.utils.exceptions import WebhookSignatureError

from .keys import SESSION_MAKER, STRIPE_GATEWAY
from .serializers import json_response

routes = web.RouteTableDef()


def _parse_json(body: bytes) -> dict:
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON payload: {e}") from e


@routes.post("/webhooks/alchemy")
async def alchemy_webhook(request: web.Request) -> web.Response:
    body = await request.read()
    signature = request.headers.get("X-Alchemy-Signature")
    if not verify_alchemy_signature(body, signature, settings.alchemy_signing_key):
        raise WebhookSignatureError("Invalid Alchemy signature")

    payload = _parse_json(body)
    async with request.app[SESSION_MAKER]() as session:
        summary = await DepositProcessor(session).process_payload(payload)
        await session.commit()

    logger.info(
        f"Alchemy webhook: {summary['processed']} transfers, "
        f"{summary['matched']} matched, {len(summary['errors'])} errors"
    )
    return json_response({"success": True, **summary})


@routes.post("/webhooks/stripe")
async def stripe_webhook(request: web.Request) -> web.Response:
    body = await request.read()
    request.app[STRIPE_GATEWAY].construct_event(
        body, request.headers.get("Stripe-Signature")
    )

    # Signature checked; dispatch on the plain payload
    event = _parse_json(body)
    async with request.app[SESSION_MAKER]() as session:
        outcome = await StripeEventHandler(session).handle(event)
        await session.commit()

    return json_response({"received": True, "type": event.get("type"), "outcome": outcome})
