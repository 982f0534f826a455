"""
Settings Management

Pydantic-based settings schema with environment variable support.
Merges the TOML config file with environment overrides.

@.architecture
Incoming: utils/config.py, Environment variables, config/cache.toml, api/dependencies.py --- {Dict from load_toml_config, str from os.getenv, get_settings calls}
Processing: get_settings(), reload_settings(), field_validator() --- {4 jobs: configuration_loading, environment_variable_merging, schema_validation, caching}
Outgoing: app.py, main.py, core/cache/manager.py, data/store/redis.py, scripts/*.py --- {Settings Pydantic model with typed config sections}
"""

import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from utils.config import get_section, load_config as load_toml_config


# =============================================================================
# Settings Schemas
# =============================================================================

class RedisSettings(BaseModel):
    """Connection and retry settings for the Redis store."""
    url: str = "redis://localhost:6379"
    max_connections: int = Field(default=20, ge=1)
    socket_timeout: float = Field(default=5.0, gt=0)
    socket_connect_timeout: float = Field(default=5.0, gt=0)
    retry_attempts: int = Field(default=5, ge=0)
    backoff_base: float = Field(default=0.05, gt=0)
    backoff_cap: float = Field(default=1.0, gt=0)
    require_bloom: bool = True


class CacheSettings(BaseModel):
    """Expiration, purge and scheduler defaults."""
    sliding_window_seconds: int = Field(default=300, gt=0)
    transient_pattern: str = "cache:temp:*"
    transient_marker: str = "temp"
    session_pattern: str = "cache:session:*"
    session_default_ttl: int = Field(default=3600, gt=0)
    cleanup_interval_ms: int = Field(default=60000, gt=0)
    auto_cleanup_enabled: bool = True
    expiring_threshold_seconds: int = Field(default=60, gt=0)
    default_error_rate: float = 0.01
    default_capacity: int = Field(default=10000, gt=0)

    @field_validator('default_error_rate')
    @classmethod
    def validate_error_rate(cls, v: float) -> float:
        if not 0 < v < 1:
            raise ValueError("default_error_rate must be between 0 and 1 (exclusive)")
        return v

    @field_validator('transient_marker')
    @classmethod
    def validate_marker(cls, v: str) -> str:
        if not v:
            raise ValueError("transient_marker must not be empty")
        return v


class MemorySettings(BaseModel):
    """Server memory management applied on startup (empty max_memory = leave as is)."""
    max_memory: str = ""
    policy: str = "allkeys-lru"
    hz: int = Field(default=100, ge=1, le=500)


class SecuritySettings(BaseModel):
    """HTTP binding and CORS."""
    bind_host: str = "0.0.0.0"
    bind_port: int = 3000
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_credentials: bool = False
    cors_allow_methods: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_headers: List[str] = Field(default_factory=lambda: ["*"])


class MonitoringSettings(BaseModel):
    """Monitoring and logging configuration."""
    # Unset = use the logging preset of the environment
    log_level: Optional[str] = None
    log_format: Optional[str] = None  # json|text
    metrics_enabled: bool = True


class Settings(BaseModel):
    """
    Main application settings.

    Loads configuration from:
    1. TOML config file (config/cache.toml)
    2. Environment variables
    3. Defaults defined in schemas

    Priority: Environment variables > TOML config > Defaults
    """

    app_name: str = "Redis Bloom Cache"
    app_version: str = "1.0.0"
    environment: str = "development"  # development|production|test

    redis: RedisSettings = Field(default_factory=RedisSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    memory: MemorySettings = Field(default_factory=MemorySettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @property
    def base_url(self) -> str:
        return f"http://{self.security.bind_host}:{self.security.bind_port}"

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = ['development', 'production', 'test']
        if v not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v


# =============================================================================
# Settings Loader
# =============================================================================

# Environment variable -> (section, field)
ENV_OVERRIDES = {
    "REDIS_URL": ("redis", "url"),
    "REDIS_MAX_CONNECTIONS": ("redis", "max_connections"),
    "REDIS_RETRY_ATTEMPTS": ("redis", "retry_attempts"),
    "REDIS_REQUIRE_BLOOM": ("redis", "require_bloom"),
    "CACHE_SLIDING_WINDOW_SECONDS": ("cache", "sliding_window_seconds"),
    "CACHE_CLEANUP_INTERVAL_MS": ("cache", "cleanup_interval_ms"),
    "CACHE_AUTO_CLEANUP": ("cache", "auto_cleanup_enabled"),
    "CACHE_SESSION_DEFAULT_TTL": ("cache", "session_default_ttl"),
    "REDIS_MAX_MEMORY": ("memory", "max_memory"),
    "REDIS_MAXMEMORY_POLICY": ("memory", "policy"),
    "SERVER_BIND_HOST": ("security", "bind_host"),
    "PORT": ("security", "bind_port"),
    "MONITORING_LOG_LEVEL": ("monitoring", "log_level"),
    "MONITORING_LOG_FORMAT": ("monitoring", "log_format"),
    "MONITORING_METRICS_ENABLED": ("monitoring", "metrics_enabled"),
}


def _apply_env_overrides(settings_dict: Dict[str, Any]) -> None:
    # Pydantic coerces the raw strings ("true", "3000") into field types
    for env_name, (section, field) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is not None and value != "":
            settings_dict.setdefault(section, {})[field] = value


@lru_cache()
def get_settings() -> Settings:
    """
    Load and return application settings (cached).

    Returns:
        Settings: Complete application settings
    """
    toml_config = load_toml_config()

    settings_dict: Dict[str, Any] = {
        "environment": os.getenv("CACHE_ENVIRONMENT", "development"),
        "redis": get_section(toml_config, "REDIS"),
        "cache": get_section(toml_config, "CACHE"),
        "memory": get_section(toml_config, "MEMORY"),
        "security": get_section(toml_config, "SERVER"),
    }

    _apply_env_overrides(settings_dict)

    return Settings(**settings_dict)


def reload_settings() -> Settings:
    """
    Reload settings (clears cache).

    Returns:
        Settings: Reloaded application settings
    """
    get_settings.cache_clear()
    return get_settings()
