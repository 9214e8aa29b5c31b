"""Application state keys."""

from collections.abc import Callable

from aiohttp import web
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from academy.services.blockchain.usdc_client import UsdcClient
from academy.services.payout import StripeGateway

SESSION_MAKER = web.AppKey("session_maker", async_sessionmaker[AsyncSession])
USDC_CLIENT_FACTORY = web.AppKey("usdc_client_factory", Callable[[], UsdcClient])
STRIPE_GATEWAY = web.AppKey("stripe_gateway", StripeGateway)
