"""
Unified Configuration System for the metastore client

Single source of truth for all configuration using pydantic-settings.

ARCHITECTURAL PRINCIPLES:
- Only this module accesses environment variables directly
- All other modules receive configuration via dependency injection
- Type-safe validation with automatic conversion
"""

import os
import socket
from enum import Enum
from typing import List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings


# =============================================================================
# ENUMS
# =============================================================================

class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# =============================================================================
# NESTED CONFIGURATION SECTIONS
# =============================================================================

class ClusterSettings(BaseSettings):
    """Data-cluster meta node addresses"""
    # JSON list in the environment, e.g. '["10.0.0.1:9221", "10.0.0.2:9221"]'
    cluster_addresses: List[str] = Field(default_factory=lambda: ["127.0.0.1:9221"])

    model_config = {"env_prefix": "METASTORE_", "extra": "ignore"}


class KVStoreSettings(BaseSettings):
    """Key-value store (Redis) configuration"""
    kv_address: str = Field(default="127.0.0.1:6379")
    kv_connect_timeout: float = Field(default=1.5, gt=0)
    kv_password: Optional[SecretStr] = Field(default=None)
    kv_db: int = Field(default=0, ge=0)

    model_config = {"env_prefix": "METASTORE_", "extra": "ignore"}


def _default_lock_identity() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


class LockSettings(BaseSettings):
    """Directory lock configuration"""
    lock_identity: str = Field(default_factory=_default_lock_identity, min_length=1)
    lock_retry_ms: int = Field(default=500, gt=0)
    lock_lease_ms: int = Field(default=10000, gt=0)

    model_config = {"env_prefix": "METASTORE_", "extra": "ignore"}

    @field_validator("lock_lease_ms")
    @classmethod
    def validate_lease_vs_retry(cls, v, info):
        """Ensure the lease outlives one polling interval"""
        retry_ms = info.data.get("lock_retry_ms", 500)
        if v <= retry_ms:
            raise ValueError(
                f"Lock lease ({v}ms) must be greater than the retry interval ({retry_ms}ms)"
            )
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration"""
    log_level: LogLevel = Field(default=LogLevel.INFO)
    log_json: bool = Field(default=True)

    model_config = {"env_prefix": "METASTORE_", "extra": "ignore"}


class MetaStoreSettings(BaseSettings):
    """
    Unified configuration for the metastore client.

    All configuration access should go through this class via dependency injection.
    """

    cluster: ClusterSettings = Field(default_factory=ClusterSettings)
    kv: KVStoreSettings = Field(default_factory=KVStoreSettings)
    lock: LockSettings = Field(default_factory=LockSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "validate_assignment": True,
        "extra": "ignore"
    }


# =============================================================================
# SINGLETON MANAGEMENT
# =============================================================================

_settings_instance: Optional[MetaStoreSettings] = None


def get_settings() -> MetaStoreSettings:
    """
    Get global settings instance (singleton pattern).

    Raises:
        ConfigurationError: If settings validation fails
    """
    global _settings_instance
    if _settings_instance is None:
        try:
            from dotenv import load_dotenv

            load_dotenv()
            _settings_instance = MetaStoreSettings()
        except Exception as e:
            from metastore.exceptions import ConfigurationError
            raise ConfigurationError(
                f"Settings initialization failed: {e}",
                error_code="SETTINGS_INIT_ERROR",
                context={"original_error": str(e), "error_type": type(e).__name__}
            )
    return _settings_instance


def reset_settings() -> None:
    """
    Reset settings instance (primarily for testing).

    Forces recreation of settings on next get_settings() call.
    """
    global _settings_instance
    _settings_instance = None
