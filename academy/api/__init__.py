"""HTTP surface: webhooks and admin payout routes."""

from .app import create_app

__all__ = ["create_app"]
