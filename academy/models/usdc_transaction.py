"""
USDC transaction model.

Ledger of on-chain USDC movements: deposits, payouts and sweeps.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from academy.models.base import Base
from academy.models.enums import UsdcTransactionStatus
from academy.models.types import MoneyType


class UsdcTransaction(Base):
    """USDC transaction model."""

    __tablename__ = "usdc_transactions"
    __table_args__ = (
        Index('idx_usdc_tx_type_status', 'transaction_type', 'status'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    from_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    to_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=UsdcTransactionStatus.PENDING, nullable=False
    )

    # Chain data
    polygon_tx_hash: Mapped[str | None] = mapped_column(
        String(66), nullable=True, unique=True
    )
    block_number: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    gas_fee_matic: Mapped[Decimal | None] = mapped_column(MoneyType, nullable=True)

    # Links
    related_payment_id: Mapped[int | None] = mapped_column(
        ForeignKey("payments.id", ondelete="SET NULL"), nullable=True
    )
    related_commission_id: Mapped[int | None] = mapped_column(nullable=True)
    payout_batch_id: Mapped[int | None] = mapped_column(
        ForeignKey("payout_batches.id", ondelete="SET NULL"), nullable=True
    )

    confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<UsdcTransaction(id={self.id}, type={self.transaction_type}, "
            f"amount={self.amount}, status={self.status})>"
        )
