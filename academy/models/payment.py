"""
Payment model.

Membership payments (initial unlock and subscription renewals) from either
on-chain USDC deposits or Stripe.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from academy.models.base import Base
from academy.models.types import MoneyType


class Payment(Base):
    """Payment model."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    payment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default="succeeded", nullable=False
    )
    payment_method: Mapped[str] = mapped_column(
        String(20), default="usdc", nullable=False
    )  # usdc | stripe

    stripe_payment_intent_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    stripe_invoice_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    polygon_tx_hash: Mapped[str | None] = mapped_column(
        String(66), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Payment(id={self.id}, user_id={self.user_id}, "
            f"type={self.payment_type}, amount={self.amount})>"
        )
