"""
Payout batch model.

Groups pending commissions for an admin-approved USDC disbursement.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from academy.models.base import Base
from academy.models.enums import PayoutBatchStatus
from academy.models.types import MoneyType


class PayoutBatch(Base):
    """Payout batch model."""

    __tablename__ = "payout_batches"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    batch_name: Mapped[str] = mapped_column(String(100), nullable=False)
    batch_type: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=PayoutBatchStatus.PENDING, nullable=False, index=True
    )

    # Totals at creation
    total_amount_usdc: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_payouts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    estimated_gas_matic: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    commission_ids: Mapped[list[int]] = mapped_column(
        JSONB, default=list, nullable=False
    )

    # Approval gate
    created_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    approved_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Execution results
    processing_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    successful_payouts: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    failed_payouts: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    total_gas_spent_matic: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    error_log: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, default=list, nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<PayoutBatch(id={self.id}, name={self.batch_name}, "
            f"status={self.status}, total={self.total_amount_usdc})>"
        )
