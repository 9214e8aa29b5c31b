"""
Status and type constants shared by models and services.
"""


class SweepStatus:
    """Per-user deposit sweep state."""

    IDLE = "idle"
    READY = "ready"
    NEEDS_FUNDING = "needs_funding"
    FUNDING_SENT = "funding_sent"
    SWEEPING = "sweeping"
    FAILED = "failed"


class MembershipStatus:
    """Platform membership state."""

    LOCKED = "locked"
    UNLOCKED = "unlocked"


class PaymentSchedule:
    """Subscription billing cadence."""

    MONTHLY = "monthly"
    WEEKLY = "weekly"


class UserRole:
    """User roles."""

    MEMBER = "member"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class CommissionType:
    """Commission kinds."""

    DIRECT_BONUS = "direct_bonus"
    RESIDUAL_MONTHLY = "residual_monthly"
    OVERPAYMENT_CREDIT = "overpayment_credit"


class CommissionStatus:
    """Commission lifecycle."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PayoutBatchType:
    """Payout batch grouping."""

    DIRECT_BONUSES = "direct_bonuses"
    MONTHLY_RESIDUAL = "monthly_residual"
    MANUAL = "manual"
    MIXED = "mixed"

    ALL = (DIRECT_BONUSES, MONTHLY_RESIDUAL, MANUAL, MIXED)


class PayoutBatchStatus:
    """Payout batch lifecycle: pending -> approved -> processing -> completed."""

    PENDING = "pending"
    APPROVED = "approved"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class UsdcTransactionType:
    """On-chain USDC movement kinds."""

    DEPOSIT = "deposit"
    PAYOUT = "payout"
    SWEEP = "sweep"


class UsdcTransactionStatus:
    """On-chain USDC movement state."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PARTIAL = "partial"
    FAILED = "failed"


class PaymentType:
    """Membership payment kinds."""

    INITIAL = "initial"
    MONTHLY = "monthly"
    WEEKLY = "weekly"


class ReferralStatus:
    """Direct referral state."""

    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class NotificationType:
    """Notification events written to the outbox."""

    DIRECT_BONUS = "direct_bonus"
    MONTHLY_COMMISSION = "monthly_commission"
    PAYOUT_PROCESSED = "payout_processed"
    PAYOUT_FAILED = "payout_failed"
    ACCOUNT_INACTIVE = "account_inactive"


class NotificationStatus:
    """Outbox row state."""

    PENDING = "pending"
    CLAIMED = "claimed"
    PROCESSED = "processed"
    FAILED = "failed"
