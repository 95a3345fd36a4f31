"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
Components never read settings directly: they receive the small frozen
config objects built by ``Settings.ingestor_config()`` and
``Settings.settlement_config()``.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledger_bridge.config.constants import (
    ACCOUNT_ID_PATTERN,
    BLOCK_RETRY_INTERVAL,
    MINIMUM_ACCOUNT_FUNDING,
    NATIVE_ASSET_TYPE,
    REQUEST_TIMEOUT,
    SETTLEMENT_INTERVAL_SECONDS,
    STREAM_PAGE_SIZE,
    STREAM_POLL_INTERVAL,
    STREAM_RETRY_INITIAL_DELAY,
    STREAM_RETRY_MAX_DELAY,
    STUCK_SENDING_ALERT_MINUTES,
)


class UnresolvedDepositPolicy(str, Enum):
    """What the ingestor does with a deposit whose memo does not resolve."""

    SKIP_AND_QUEUE = "skip_and_queue"
    BLOCK = "block"


@dataclass(frozen=True)
class IngestorConfig:
    """Configuration consumed by the deposit ingestor."""

    base_account_address: str
    native_asset_type: str = NATIVE_ASSET_TYPE
    unresolved_policy: UnresolvedDepositPolicy = UnresolvedDepositPolicy.SKIP_AND_QUEUE
    retry_initial_delay: float = STREAM_RETRY_INITIAL_DELAY
    retry_max_delay: float = STREAM_RETRY_MAX_DELAY
    block_retry_interval: float = BLOCK_RETRY_INTERVAL


@dataclass(frozen=True)
class SettlementConfig:
    """Configuration consumed by the withdrawal settlement engine."""

    base_account_address: str
    interval_seconds: float = SETTLEMENT_INTERVAL_SECONDS
    minimum_account_funding: Decimal = MINIMUM_ACCOUNT_FUNDING
    stuck_sending_alert_minutes: int = STUCK_SENDING_ALERT_MINUTES


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Public ledger
    horizon_url: str = Field(
        default="https://horizon-testnet.stellar.org",
        description="Base URL of the Horizon-style ledger API",
    )
    network_passphrase: str = "Test SDF Network ; September 2015"
    base_account_address: str = Field(
        ...,
        description="Exchange account: receives deposits and submits withdrawals",
    )
    native_asset_type: str = NATIVE_ASSET_TYPE
    request_timeout_seconds: float = Field(default=REQUEST_TIMEOUT, gt=0)

    # Deposit stream
    stream_page_size: int = Field(default=STREAM_PAGE_SIZE, ge=1, le=200)
    stream_poll_interval: float = Field(default=STREAM_POLL_INTERVAL, gt=0)
    stream_retry_initial_delay: float = Field(default=STREAM_RETRY_INITIAL_DELAY, gt=0)
    stream_retry_max_delay: float = Field(default=STREAM_RETRY_MAX_DELAY, gt=0)
    unresolved_deposit_policy: UnresolvedDepositPolicy = UnresolvedDepositPolicy.SKIP_AND_QUEUE
    block_retry_interval_seconds: float = Field(default=BLOCK_RETRY_INTERVAL, gt=0)

    # Settlement
    settlement_interval_seconds: float = Field(
        default=SETTLEMENT_INTERVAL_SECONDS, gt=0,
        description="Seconds between settlement cycles",
    )
    minimum_account_funding: Decimal = Field(
        default=MINIMUM_ACCOUNT_FUNDING, gt=0,
        description="Smallest amount allowed on the create-and-fund path",
    )
    stuck_sending_alert_minutes: int = Field(default=STUCK_SENDING_ALERT_MINUTES, ge=1)
    signer_path: str | None = Field(
        default=None,
        description="module:attribute of the transaction signer factory",
    )

    # Application
    environment: str = "production"
    log_level: str = "INFO"
    log_file: str | None = "logs/ledger_bridge.log"
    health_check_port: int = Field(
        default=8080, ge=1, le=65535, description="Health check HTTP server port"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("base_account_address")
    @classmethod
    def validate_account_address(cls, v: str) -> str:
        """Validate account ID format."""
        v = v.strip()
        if not re.match(ACCOUNT_ID_PATTERN, v):
            raise ValueError(
                "Invalid account address. "
                "Expected a 56-character account ID starting with 'G'."
            )
        return v

    @field_validator("horizon_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize Horizon URL."""
        return v.rstrip("/")

    @field_validator("signer_path")
    @classmethod
    def validate_signer_path(cls, v: str | None) -> str | None:
        """Signer path must look like 'package.module:attribute'."""
        if v is not None and ":" not in v:
            raise ValueError("SIGNER_PATH must be in 'module:attribute' form")
        return v

    @model_validator(mode="after")
    def validate_retry_window(self) -> "Settings":
        """Initial retry delay cannot exceed the cap."""
        if self.stream_retry_initial_delay > self.stream_retry_max_delay:
            raise ValueError(
                "STREAM_RETRY_INITIAL_DELAY must not exceed STREAM_RETRY_MAX_DELAY"
            )
        return self

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if not self.signer_path:
                raise ValueError(
                    "SIGNER_PATH is required in production. "
                    "Point it at the offline signing adapter factory."
                )
            if self.database_url.startswith("sqlite"):
                logger.warning(
                    "DATABASE_URL points at SQLite in production. "
                    "Row locks are not enforced on SQLite."
                )
        return self

    def ingestor_config(self) -> IngestorConfig:
        """Build the deposit ingestor configuration."""
        return IngestorConfig(
            base_account_address=self.base_account_address,
            native_asset_type=self.native_asset_type,
            unresolved_policy=self.unresolved_deposit_policy,
            retry_initial_delay=self.stream_retry_initial_delay,
            retry_max_delay=self.stream_retry_max_delay,
            block_retry_interval=self.block_retry_interval_seconds,
        )

    def settlement_config(self) -> SettlementConfig:
        """Build the settlement engine configuration."""
        return SettlementConfig(
            base_account_address=self.base_account_address,
            interval_seconds=self.settlement_interval_seconds,
            minimum_account_funding=self.minimum_account_funding,
            stuck_sending_alert_minutes=self.stuck_sending_alert_minutes,
        )


def load_settings(**overrides) -> Settings:
    """
    Build a fresh Settings instance.

    Args:
        **overrides: Explicit values taking precedence over the environment

    Returns:
        Settings
    """
    return Settings(**overrides)
