"""
Treasury setting model.

Key/value store for treasury configuration. The master xprv value is kept
Fernet-encrypted.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from academy.models.base import Base


class TreasurySetting(Base):
    """Treasury setting model."""

    __tablename__ = "treasury_settings"

    MASTER_WALLET_XPRV = "master_wallet_xprv"
    TREASURY_WALLET_ADDRESS = "treasury_wallet_address"
    CURRENT_DERIVATION_INDEX = "current_derivation_index"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    def __repr__(self) -> str:
        """String representation (value omitted)."""
        return f"<TreasurySetting(key={self.key})>"
