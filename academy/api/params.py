"""Request parameter parsing shared by the admin routes."""

from typing import Any

from aiohttp import web


async def json_body(request: web.Request) -> dict[str, Any]:
    """JSON object body; empty dict when there is no body."""
    if not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except ValueError as e:
        raise ValueError(f"Invalid JSON body: {e}") from e
    if not isinstance(body, dict):
        raise ValueError("JSON body must be an object")
    return body


def admin_id(request: web.Request) -> int | None:
    """Acting admin from the X-Admin-Id header, if given."""
    value = request.headers.get("X-Admin-Id")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValueError("X-Admin-Id must be an integer") from e


def int_param(request: web.Request, name: str) -> int:
    try:
        return int(request.match_info[name])
    except ValueError as e:
        raise ValueError(f"{name} must be an integer") from e
