"""
Pydantic configuration models for SupplyLink.

These models provide type-safe configuration with validation for:
- Data store selection and connection settings
- Local database settings
- Bidding window hours and time zone
- The local user profile
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from supplylink.core.market.models import Identity, Role
from supplylink.core.market.window import DEFAULT_OPENING_HOURS, DEFAULT_TIMEZONE, TimeWindowPolicy


# =============================================================================
# Enums
# =============================================================================


class StoreBackend(str, Enum):
    """Where market data lives."""

    HTTP = "http"
    LOCAL = "local"


# =============================================================================
# Store Configuration
# =============================================================================


class StoreConfig(BaseModel):
    """Data store connection settings."""

    backend: StoreBackend = Field(
        default=StoreBackend.HTTP,
        description="Remote REST backend or local SQLite store",
    )
    base_url: str = Field(
        default="https://supply-link-backend.vercel.app/api",
        description="REST API base URL",
    )
    api_token: str | None = Field(
        default=None,
        description="Bearer token sent with every request",
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="Request timeout",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for read requests",
    )
    retry_backoff_factor: float = Field(
        default=2.0,
        ge=1.0,
        le=10.0,
        description="Exponential backoff multiplier",
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v


# =============================================================================
# Database Configuration
# =============================================================================


class DatabaseConfig(BaseModel):
    """Database connection settings for the local store."""

    url: str = Field(
        default="sqlite:///data/supplylink.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging)",
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Connection pool size",
    )


# =============================================================================
# Window Configuration
# =============================================================================


class WindowConfig(BaseModel):
    """Bidding window settings."""

    opening_hours: list[int] = Field(
        default_factory=lambda: list(DEFAULT_OPENING_HOURS),
        description="Hours of the day (0-23) during which bidding is open",
    )
    timezone: str = Field(
        default=DEFAULT_TIMEZONE,
        description="IANA time zone the hours are evaluated in",
    )

    @field_validator("opening_hours")
    @classmethod
    def validate_hours(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("At least one opening hour is required")
        if len(set(v)) != len(v):
            raise ValueError("Opening hours must be unique")
        for hour in v:
            if not 0 <= hour <= 23:
                raise ValueError(f"Opening hour out of range: {hour}")
        return sorted(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v

    def to_policy(self) -> TimeWindowPolicy:
        return TimeWindowPolicy(self.opening_hours, self.timezone)


# =============================================================================
# Profile Configuration
# =============================================================================


class ProfileConfig(BaseModel):
    """The local user, as the identity provider would resolve them."""

    user_id: str | None = Field(
        default=None,
        description="User ID; unset means not logged in",
    )
    display_name: str | None = Field(
        default=None,
        description="Name shown to other participants",
    )
    role: Role = Field(
        default=Role.VENDOR,
        description="vendor or supplier",
    )
    state: str | None = Field(
        default=None,
        description="Registered state (market region)",
    )
    pincode: str | None = Field(
        default=None,
        description="Registered postal code",
    )

    def to_identity(self) -> Identity:
        return Identity(
            user_id=self.user_id or None,
            role=self.role,
            state=self.state or None,
            pincode=self.pincode or None,
            display_name=self.display_name or None,
        )


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=Path("logs/supplylink.log"),
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from app.yaml.
    """

    data_dir: Path = Field(
        default=Path("data"),
        description="Data storage directory",
    )

    store: StoreConfig = Field(default_factory=StoreConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    window: WindowConfig = Field(default_factory=WindowConfig)
    profile: ProfileConfig = Field(default_factory=ProfileConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

        if self.logging.file:
            self.logging.file.parent.mkdir(parents=True, exist_ok=True)
