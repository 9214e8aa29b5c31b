"""
Referral model.

Direct referrer -> referred link created at signup.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from academy.models.base import Base
from academy.models.enums import ReferralStatus


class Referral(Base):
    """Referral model - direct referral relationship."""

    __tablename__ = "referrals"
    __table_args__ = (
        UniqueConstraint(
            'referrer_id', 'referred_id', name='uq_referral_pair'
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    referrer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    referred_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    status: Mapped[str] = mapped_column(
        String(20), default=ReferralStatus.PENDING, nullable=False
    )
    initial_payment_status: Mapped[str] = mapped_column(
        String(20), default="pending", nullable=False
    )
    activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Referral(referrer={self.referrer_id}, "
            f"referred={self.referred_id}, status={self.status})>"
        )
