"""
Web3 provider.

The API process shares one AsyncWeb3 HTTP provider. Worker tasks run on
per-thread event loops and build their own client per task.
"""

from web3 import AsyncHTTPProvider, AsyncWeb3

from academy.config.settings import settings
from academy.services.blockchain.usdc_client import UsdcClient

_web3: AsyncWeb3 | None = None
_usdc_client: UsdcClient | None = None


def create_usdc_client() -> UsdcClient:
    """New USDC client on a fresh provider."""
    web3 = AsyncWeb3(AsyncHTTPProvider(settings.polygon_rpc_url))
    return UsdcClient(web3, settings.usdc_contract_address)


def get_web3() -> AsyncWeb3:
    """Shared AsyncWeb3 for the configured Polygon RPC."""
    global _web3
    if _web3 is None:
        _web3 = AsyncWeb3(AsyncHTTPProvider(settings.polygon_rpc_url))
    return _web3


def get_usdc_client() -> UsdcClient:
    """Shared USDC client."""
    global _usdc_client
    if _usdc_client is None:
        _usdc_client = UsdcClient(get_web3(), settings.usdc_contract_address)
    return _usdc_client


def reset_blockchain_clients() -> None:
    """Forget the shared clients."""
    global _web3, _usdc_client
    _web3 = None
    _usdc_client = None
