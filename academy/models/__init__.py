"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from academy.models.base import Base
from academy.models.commission import Commission
from academy.models.crypto_audit_log import CryptoAuditLog
from academy.models.enums import (
    CommissionStatus,
    CommissionType,
    MembershipStatus,
    NotificationStatus,
    NotificationType,
    PaymentSchedule,
    PaymentType,
    PayoutBatchStatus,
    PayoutBatchType,
    ReferralStatus,
    SweepStatus,
    UsdcTransactionStatus,
    UsdcTransactionType,
    UserRole,
)
from academy.models.notification_outbox import NotificationOutbox
from academy.models.payment import Payment
from academy.models.payout_batch import PayoutBatch
from academy.models.referral import Referral
from academy.models.subscription import Subscription
from academy.models.treasury_setting import TreasurySetting
from academy.models.usdc_transaction import UsdcTransaction

# Core Models
from academy.models.user import User
from academy.models.volume_history import VolumeHistory

__all__ = [
    "Base",
    "Commission",
    "CommissionStatus",
    "CommissionType",
    "CryptoAuditLog",
    "MembershipStatus",
    "NotificationOutbox",
    "NotificationStatus",
    "NotificationType",
    "Payment",
    "PaymentSchedule",
    "PaymentType",
    "PayoutBatch",
    "PayoutBatchStatus",
    "PayoutBatchType",
    "Referral",
    "ReferralStatus",
    "Subscription",
    "SweepStatus",
    "TreasurySetting",
    "UsdcTransaction",
    "UsdcTransactionStatus",
    "UsdcTransactionType",
    "User",
    "UserRole",
    "VolumeHistory",
]
