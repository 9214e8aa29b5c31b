"""
Encryption utilities for key material at rest.

The master xprv in treasury_settings is stored as a Fernet token.
"""

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger

from academy.config.settings import settings
from academy.utils.exceptions import SecurityError


class EncryptionService:
    """
    Encryption service for treasury secrets.

    Uses Fernet (symmetric encryption). Outside production a missing key
    disables encryption and values pass through unchanged.
    """

    def __init__(
        self,
        encryption_key: str | None = None,
        environment: str | None = None,
    ) -> None:
        """
        Initialize encryption service.

        Args:
            encryption_key: URL-safe base64 Fernet key
            environment: Deployment environment (defaults to settings)
        """
        self.environment = environment or settings.environment
        self.fernet: Fernet | None = None

        if encryption_key:
            try:
                self.fernet = Fernet(encryption_key.encode())
            except ValueError as e:
                logger.error(f"Invalid encryption key: {e}")
                if self.environment == "production":
                    raise SecurityError(
                        "Invalid encryption key in production environment"
                    ) from e
        elif self.environment == "production":
            raise SecurityError(
                "Encryption key not configured in production environment. "
                "Set ENCRYPTION_KEY in .env file."
            )

    @property
    def enabled(self) -> bool:
        return self.fernet is not None

    def encrypt(self, plaintext: str) -> str:
        """Encrypt plaintext into a Fernet token."""
        if not self.fernet:
            if self.environment == "production":
                raise SecurityError("Encryption must be enabled in production")
            logger.warning("Encryption disabled - storing plaintext (DEV ONLY)")
            return plaintext
        return self.fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, token: str) -> str:
        """
        Decrypt a Fernet token.

        Raises:
            SecurityError: token is invalid or was made with another key
        """
        if not self.fernet:
            if self.environment == "production":
                raise SecurityError("Encryption must be enabled in production")
            logger.warning("Encryption disabled - returning value as-is (DEV ONLY)")
            return token
        try:
            return self.fernet.decrypt(token.encode()).decode()
        except InvalidToken as e:
            raise SecurityError("Decryption failed: invalid token or key") from e

    @staticmethod
    def generate_key() -> str:
        """Generate new Fernet key."""
        return Fernet.generate_key().decode()


_encryption_service: EncryptionService | None = None


def get_encryption_service() -> EncryptionService:
    """Get encryption service singleton, created from settings on first use."""
    global _encryption_service

    if _encryption_service is None:
        _encryption_service = EncryptionService(settings.encryption_key)
    return _encryption_service
