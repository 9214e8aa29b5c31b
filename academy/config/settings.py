"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from academy.config.constants import (
    DEFAULT_MATIC_PRICE_USD,
    MIN_PAYOUT_AMOUNT_USDC,
    USDC_CONTRACT_MAINNET,
    USDC_CONTRACT_TESTNET,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (for Dramatiq and distributed locks)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Security
    secret_key: str
    encryption_key: str | None = None
    admin_api_token: str | None = Field(
        default=None,
        description="Bearer token required by the admin payout routes",
    )

    # Polygon
    polygon_network: str = Field(
        default="mainnet",
        description="mainnet or amoy",
    )
    polygon_rpc_url: str = "https://polygon-rpc.com"
    usdc_contract_address: str | None = None

    # Treasury wallets
    # Treasury address may also live in treasury_settings; env wins when set
    treasury_wallet_address: str | None = None
    gas_tank_private_key: str | None = None
    payout_wallet_private_key: str | None = None

    # Alchemy address-activity webhook
    alchemy_signing_key: str | None = None

    # Stripe
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None

    # Payouts
    min_payout_amount: Decimal = Field(
        default=MIN_PAYOUT_AMOUNT_USDC,
        gt=0,
        description="Minimum commission total per user in a payout batch (USDC)",
    )
    matic_price_usd: Decimal = Field(
        default=DEFAULT_MATIC_PRICE_USD,
        gt=0,
        description="POL/MATIC price used for gas cost estimates",
    )

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    site_url: str = "https://tradinghub.com"
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8080, ge=1, le=65535)
    health_check_port: int = Field(
        default=8081, ge=1, le=65535, description="Scheduler health check port"
    )

    # Emergency stops
    emergency_stop_sweeps: bool = Field(
        default=False,
        description="Skip all sweep pipeline stages",
    )
    emergency_stop_payouts: bool = Field(
        default=False,
        description="Refuse to execute payout batches and single payouts",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def set_usdc_contract_default(self) -> 'Settings':
        """Pick the USDC contract for the configured network."""
        if not self.usdc_contract_address:
            if self.polygon_network == "mainnet":
                self.usdc_contract_address = USDC_CONTRACT_MAINNET.lower()
            else:
                self.usdc_contract_address = USDC_CONTRACT_TESTNET.lower()
        return self

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production':
            if self.debug:
                raise ValueError(
                    'DEBUG must be False in production environment. '
                    'Set DEBUG=false in your .env file.'
                )

            if not self.secret_key or len(self.secret_key) < 32:
                raise ValueError(
                    'SECRET_KEY must be at least 32 characters in '
                    'production. Generate one with: openssl rand -hex 32'
                )

            if not self.encryption_key or len(self.encryption_key) < 32:
                raise ValueError(
                    "ENCRYPTION_KEY is required in production environment. "
                    "Generate a key with: python -c 'from cryptography.fernet import Fernet; "
                    "print(Fernet.generate_key().decode())'"
                )

            if not self.alchemy_signing_key:
                raise ValueError(
                    'ALCHEMY_SIGNING_KEY is required in production. '
                    'Deposit webhooks cannot be verified without it.'
                )

            if not self.admin_api_token:
                logger.warning(
                    'ADMIN_API_TOKEN is not set - admin payout routes are disabled'
                )

            if self.gas_tank_private_key and 'your_' in self.gas_tank_private_key.lower():
                logger.warning(
                    'GAS_TANK_PRIVATE_KEY appears to be a placeholder. '
                    'Sweep funding will fail until a real key is set.'
                )

        return self

    @field_validator('polygon_network')
    @classmethod
    def validate_network(cls, v: str) -> str:
        """Only Polygon mainnet and the Amoy testnet are supported."""
        v = v.lower()
        if v not in ("mainnet", "amoy"):
            raise ValueError('POLYGON_NETWORK must be "mainnet" or "amoy"')
        return v

    @field_validator('treasury_wallet_address', 'usdc_contract_address')
    @classmethod
    def validate_eth_address(cls, v: str | None) -> str | None:
        """Validate Ethereum address format."""
        if v is None:
            return v
        if not v.startswith('0x') or len(v) != 42:
            raise ValueError(
                f'Invalid Ethereum address: {v}. '
                'Must start with 0x and be 42 characters long.'
            )
        try:
            int(v[2:], 16)
        except ValueError as exc:
            raise ValueError(f'Invalid Ethereum address format: {v}') from exc
        return v.lower()

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(('postgresql://', 'postgresql+asyncpg://')):
            raise ValueError(
                'DATABASE_URL must start with postgresql:// or postgresql+asyncpg://'
            )
        return v

    @property
    def async_database_url(self) -> str:
        """Database URL with the asyncpg driver."""
        if self.database_url.startswith('postgresql://'):
            return self.database_url.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return self.database_url


# Global settings instance
settings = Settings()
