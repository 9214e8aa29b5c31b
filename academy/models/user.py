"""
User model.

Represents a platform member: referral link, ternary tree placement,
subscription state, deposit address and sweep bookkeeping.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from academy.models.base import Base
from academy.models.enums import (
    MembershipStatus,
    PaymentSchedule,
    SweepStatus,
    UserRole,
)
from academy.models.types import MoneyType, RateType


class User(Base):
    """User model - platform members."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            'last_referral_branch IS NULL OR last_referral_branch BETWEEN 1 AND 3',
            name='check_user_last_referral_branch'
        ),
        CheckConstraint(
            'sniper_volume_current_month >= 0',
            name='check_user_volume_non_negative'
        ),
        CheckConstraint(
            'total_network_count >= 0 AND active_network_count >= 0',
            name='check_user_network_counts_non_negative'
        ),
        Index('idx_users_sweep_status', 'sweep_status'),
        UniqueConstraint(
            'network_level', 'network_position', name='uq_users_network_slot'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Identity
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.MEMBER, nullable=False
    )
    referral_code: Mapped[str | None] = mapped_column(
        String(20), nullable=True, unique=True, index=True
    )
    referred_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Membership and subscription
    membership_status: Mapped[str] = mapped_column(
        String(20), default=MembershipStatus.LOCKED, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    initial_payment_completed: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    initial_payment_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    bypass_initial_payment: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    bypass_subscription: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    payment_schedule: Mapped[str] = mapped_column(
        String(20), default=PaymentSchedule.MONTHLY, nullable=False
    )
    last_payment_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    # Qualification (3 active direct referrals)
    qualified: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    qualified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    direct_referrals_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    accumulated_residual: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False,
        comment="Residual earned while not yet qualified"
    )

    # Ternary tree placement
    network_position_id: Mapped[str | None] = mapped_column(
        String(20), nullable=True, unique=True
    )
    network_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    network_position: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    tree_parent_network_position_id: Mapped[str | None] = mapped_column(
        String(20), nullable=True, index=True
    )
    last_referral_branch: Mapped[int | None] = mapped_column(
        Integer, nullable=True,
        comment="Branch (1-3) that received this user's last referral"
    )
    total_network_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    active_network_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    current_commission_rate: Mapped[Decimal] = mapped_column(
        RateType, default=Decimal("0.10"), nullable=False
    )
    current_structure_number: Mapped[int] = mapped_column(
        Integer, default=1, nullable=False
    )

    # Sniper volume
    sniper_volume_current_month: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    sniper_volume_previous_month: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Wallets and payment providers
    deposit_address: Mapped[str | None] = mapped_column(
        String(42), nullable=True, unique=True
    )
    deposit_derivation_index: Mapped[int | None] = mapped_column(
        Integer, nullable=True, unique=True
    )
    payout_wallet_address: Mapped[str | None] = mapped_column(
        String(42), nullable=True
    )
    stripe_customer_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True
    )
    stripe_connect_account_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    # Sweep pipeline
    sweep_status: Mapped[str] = mapped_column(
        String(20), default=SweepStatus.IDLE, nullable=False
    )
    sweep_usdc_balance: Mapped[Decimal | None] = mapped_column(
        MoneyType, nullable=True
    )
    sweep_identified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    sweep_funding_tx: Mapped[str | None] = mapped_column(
        String(66), nullable=True
    )
    sweep_funded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    sweep_tx: Mapped[str | None] = mapped_column(String(66), nullable=True)
    sweep_executed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    sweep_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    sweep_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<User(id={self.id}, email={self.email}, "
            f"position={self.network_position_id}, sweep={self.sweep_status})>"
        )

    @property
    def is_superadmin(self) -> bool:
        """Superadmins bypass subscription checks."""
        return self.role == UserRole.SUPERADMIN

    @property
    def is_unlocked(self) -> bool:
        """Initial unlock paid or waived."""
        return self.initial_payment_completed or self.bypass_initial_payment
