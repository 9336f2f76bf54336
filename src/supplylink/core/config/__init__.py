"""Configuration loading and validation."""

from .models import (
    # Enums
    StoreBackend,
    # Config models
    AppConfig,
    StoreConfig,
    DatabaseConfig,
    WindowConfig,
    ProfileConfig,
    LoggingConfig,
)
from .loader import ConfigError, load_app_config, write_default_config

__all__ = [
    # Enums
    "StoreBackend",
    # Config models
    "AppConfig",
    "StoreConfig",
    "DatabaseConfig",
    "WindowConfig",
    "ProfileConfig",
    "LoggingConfig",
    # Loaders
    "ConfigError",
    "load_app_config",
    "write_default_config",
]
