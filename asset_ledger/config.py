"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class AssetLedgerConfig(BaseSettings):
    """Asset ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="ASSET_LEDGER_",
        env_file=".env",
        case_sensitive=False,
    )

    # World state configuration
    storage_backend: str = "memory"  # memory or sqlite
    sqlite_path: str = "asset_ledger.db"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    api_debug: bool = False

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Business rules configuration
    active_status: str = "ACTIVE"
    transaction_key_prefix: str = "TXN_"
    seed_on_startup: bool = False

    @field_validator("storage_backend")
    @classmethod
    def check_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("memory", "sqlite"):
            raise ValueError(f"storage_backend must be 'memory' or 'sqlite', got {v!r}")
        return v

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError(f"log_format must be 'json' or 'text', got {v!r}")
        return v

    @field_validator("transaction_key_prefix")
    @classmethod
    def check_transaction_key_prefix(cls, v: str) -> str:
        if not v:
            raise ValueError("transaction_key_prefix must not be empty")
        return v


# Global configuration instance
config = AssetLedgerConfig()


def get_config() -> AssetLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> AssetLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = AssetLedgerConfig()
    return config
