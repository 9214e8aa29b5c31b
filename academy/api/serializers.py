"""JSON encoding for API responses."""

import json
from datetime import datetime
from decimal import Decimal
from functools import partial
from typing import Any

from aiohttp import web

from academy.models.payout_batch import PayoutBatch


def _default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, PayoutBatch):
        return batch_to_dict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


dumps = partial(json.dumps, default=_default)


def batch_to_dict(batch: PayoutBatch) -> dict[str, Any]:
    """Public view of a payout batch."""
    return {
        "id": batch.id,
        "batch_name": batch.batch_name,
        "batch_type": batch.batch_type,
        "status": batch.status,
        "total_amount_usdc": batch.total_amount_usdc,
        "total_payouts": batch.total_payouts,
        "estimated_gas_matic": batch.estimated_gas_matic,
        "commission_ids": batch.commission_ids,
        "approved_by": batch.approved_by,
        "approved_at": batch.approved_at,
        "successful_payouts": batch.successful_payouts,
        "failed_payouts": batch.failed_payouts,
        "total_gas_spent_matic": batch.total_gas_spent_matic,
        "error_log": batch.error_log,
        "completed_at": batch.completed_at,
        "created_at": batch.created_at,
    }


def json_response(data: Any, status: int = 200) -> web.Response:
    """web.json_response that understands Decimal, datetime and batches."""
    return web.json_response(data, status=status, dumps=dumps)
