"""
HTTP application.

Webhook receivers plus admin payout and network routes.
"""

from collections.abc import Callable

from aiohttp import web
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from academy.services.blockchain.usdc_client import UsdcClient
from academy.services.payout import StripeGateway

from . import network, payouts, webhooks
from .keys import SESSION_MAKER, STRIPE_GATEWAY, USDC_CLIENT_FACTORY
from .middlewares import admin_auth_middleware, error_middleware


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "alive"})


def create_app(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
    usdc_client_factory: Callable[[], UsdcClient] | None = None,
    stripe_gateway: StripeGateway | None = None,
) -> web.Application:
    """
    Build the aiohttp application.

    Dependencies default to the process-wide database session factory,
    the shared USDC client and a settings-configured Stripe gateway.
    """
    if session_maker is None:
        from academy.config.database import async_session_maker
        session_maker = async_session_maker
    if usdc_client_factory is None:
        from academy.services.blockchain.provider import get_usdc_client
        usdc_client_factory = get_usdc_client

    app = web.Application(middlewares=[error_middleware, admin_auth_middleware])
    app[SESSION_MAKER] = session_maker
    app[USDC_CLIENT_FACTORY] = usdc_client_factory
    app[STRIPE_GATEWAY] = stripe_gateway or StripeGateway()

    app.router.add_get("/health", health)
    app.add_routes(webhooks.routes)
    app.add_routes(payouts.routes)
    app.add_routes(network.routes)
    return app
