"""
Audit service.

Writes crypto_audit_log entries for money-moving and treasury events.
"""

from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.crypto_audit_log import CryptoAuditLog
from academy.repositories.crypto_audit_log_repository import (
    CryptoAuditLogRepository,
)


class AuditEvent:
    """Audit event names."""

    SWEEP_IDENTIFY_COMPLETED = "sweep_identify_completed"
    SWEEP_FUND_COMPLETED = "sweep_fund_completed"
    SWEEP_EXECUTE_COMPLETED = "sweep_execute_completed"
    SWEEP_VERIFY_COMPLETED = "sweep_verify_completed"
    DEPOSIT_SWEPT = "deposit_swept"
    DEPOSIT_SWEEP_FAILED = "deposit_sweep_failed"
    DEPOSIT_DETECTED_WEBHOOK = "deposit_detected_webhook"
    DEPOSIT_UNDERPAID_WEBHOOK = "deposit_underpaid_webhook"
    DEPOSIT_ADDRESS_GENERATED = "deposit_address_generated"
    PAYOUT_BATCH_CREATED = "payout_batch_created"
    PAYOUT_APPROVED = "payout_approved"
    PAYOUT_EXECUTED = "payout_executed"
    STRIPE_BULK_PAYOUT = "stripe_bulk_payout"
    STRIPE_PAYOUT_EVENT = "stripe_payout_event"
    GAS_TANK_ALERT = "gas_tank_alert"
    MONTHLY_VOLUMES_PROCESSED = "monthly_volumes_processed"


class AuditService:
    """Append entries to the crypto audit log."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = CryptoAuditLogRepository(session)

    async def log(
        self,
        event_type: str,
        details: dict[str, Any] | None = None,
        user_id: int | None = None,
        admin_id: int | None = None,
        entity_type: str | None = None,
        entity_id: int | str | None = None,
    ) -> CryptoAuditLog:
        """
        Record an audit event.

        Args:
            event_type: One of AuditEvent
            details: JSON-serialisable context
            user_id: Affected user
            admin_id: Acting admin
            entity_type: e.g. "payout_batch"
            entity_id: Entity primary key

        Returns:
            Created entry
        """
        entry = await self.repo.create(
            event_type=event_type,
            details=details or {},
            user_id=user_id,
            admin_id=admin_id,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
        )
        logger.debug(
            f"Audit: {event_type}",
            extra={"user_id": user_id, "entity_id": entity_id},
        )
        return entry
