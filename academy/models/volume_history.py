"""
Volume history model.

Monthly snapshot of a user's network volume and earnings.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from academy.models.base import Base
from academy.models.types import MoneyType, RateType


class VolumeHistory(Base):
    """Monthly volume snapshot."""

    __tablename__ = "volume_history"
    __table_args__ = (
        UniqueConstraint('user_id', 'period', name='uq_volume_history_user_period'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    period: Mapped[str] = mapped_column(String(7), nullable=False)  # YYYY-MM

    personal_volume: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_network_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    active_network_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    direct_referrals_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    commission_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    structure_number: Mapped[int] = mapped_column(Integer, nullable=False)
    gross_earnings: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    capped_earnings: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    can_withdraw: Mapped[bool] = mapped_column(Boolean, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<VolumeHistory(user_id={self.user_id}, period={self.period}, "
            f"volume={self.personal_volume})>"
        )
