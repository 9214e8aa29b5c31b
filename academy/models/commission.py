"""
Commission model.

Money owed to a referrer: direct bonuses on initial unlocks, monthly
residuals from network volume and overpayment credits.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from academy.models.base import Base
from academy.models.enums import CommissionStatus
from academy.models.types import MoneyType


class Commission(Base):
    """Commission model - payable earnings."""

    __tablename__ = "commissions"
    __table_args__ = (
        CheckConstraint('amount >= 0', name='check_commission_amount_non_negative'),
        CheckConstraint('retry_count >= 0', name='check_commission_retry_non_negative'),
        Index('idx_commissions_status_type', 'status', 'commission_type'),
        Index('idx_commissions_batch', 'payout_batch_id'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Beneficiary and source
    referrer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    referred_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    commission_type: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    net_amount_usdc: Mapped[Decimal | None] = mapped_column(
        MoneyType, nullable=True,
        comment="Amount after fees, when it differs from amount"
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), default=CommissionStatus.PENDING, nullable=False
    )

    # Payout linkage
    payout_batch_id: Mapped[int | None] = mapped_column(
        ForeignKey("payout_batches.id", ondelete="SET NULL"),
        nullable=True
    )
    usdc_transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("usdc_transactions.id", ondelete="SET NULL"),
        nullable=True
    )
    stripe_transfer_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    # Failure bookkeeping
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
        index=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Commission(id={self.id}, referrer={self.referrer_id}, "
            f"type={self.commission_type}, amount={self.amount}, "
            f"status={self.status})>"
        )

    @property
    def payable_amount(self) -> Decimal:
        """Net amount when set, gross otherwise."""
        if self.net_amount_usdc is not None:
            return self.net_amount_usdc
        return self.amount
