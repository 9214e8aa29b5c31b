"""
Request middlewares.

Admin bearer authentication and exception to status code mapping.
"""

from collections.abc import Awaitable, Callable

from aiohttp import web
from loguru import logger

from academy.config.settings import settings
from academy.utils.exceptions import (
    NotFoundError,
    PayoutBatchStateError,
    WebhookSignatureError,
)
from academy.utils.security import constant_time_equals

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

ADMIN_PATH_PREFIXES = ("/payouts", "/network", "/members")


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"success": False, "error": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Translate domain exceptions into JSON error responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except WebhookSignatureError as e:
        logger.warning(f"Rejected webhook on {request.path}: {e}")
        return _error(str(e), 401)
    except NotFoundError as e:
        return _error(str(e), 404)
    except PayoutBatchStateError as e:
        return _error(str(e), 409)
    except ValueError as e:
        return _error(str(e), 400)
    except Exception as e:
        logger.exception(f"Unhandled error on {request.method} {request.path}: {e}")
        return _error("Internal server error", 500)


@web.middleware
async def admin_auth_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """Require `Authorization: Bearer <ADMIN_API_TOKEN>` on admin routes."""
    if not request.path.startswith(ADMIN_PATH_PREFIXES):
        return await handler(request)

    token = settings.admin_api_token
    if not token:
        return _error("Admin API is disabled", 401)

    header = request.headers.get("Authorization", "")
    scheme, _, supplied = header.partition(" ")
    if scheme.lower() != "bearer" or not constant_time_equals(supplied.strip(), token):
        logger.warning(f"Unauthorized admin request to {request.path}")
        return _error("Unauthorized", 401)

    return await handler(request)
