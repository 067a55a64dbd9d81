"""Application configuration with environment separation."""
from functools import lru_cache
from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from f1_proxy import __version__


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = Field(default=True, validate_default=True)

    # App
    app_name: str = "F1 API Proxy"
    service_name: str = "f1-api-proxy"
    version: str = __version__
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    shutdown_timeout: int = Field(default=30, description="Seconds to drain in-flight requests")

    # Upstream - Jolpica (Ergast successor)
    jolpica_api_url: str = Field(default="http://api.jolpi.ca/ergast/f1")
    api_timeout: float = Field(default=10.0, description="Upstream timeout in seconds")

    # Cache - per volatility class overrides, unset means built-in default
    cache_ttl_historical: int | None = None
    cache_ttl_current: int | None = None
    cache_ttl_live: int | None = None
    cache_ttl_default: int | None = None
    cache_max_entries: int = Field(default=1000, ge=1)
    cache_check_period: int = Field(default=120, ge=0)
    coalesce_requests: bool = Field(default=True)

    # Security - stored as comma-separated string in .env
    allowed_origins: str = Field(default="http://localhost:3000,http://localhost:5173")
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_window_seconds: int = Field(default=15 * 60, ge=1)
    rate_limit_max_requests: int = Field(default=100, ge=1)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="json or console")

    @field_validator("debug", mode="before")
    @classmethod
    def set_debug(cls, v, info):
        """Disable debug in production."""
        if info.data.get("environment") == Environment.PRODUCTION:
            return False
        return v

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return v

    @property
    def allowed_origins_list(self) -> list[str]:
        """Get allowed origins as list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def rate_limit(self) -> str:
        """Limit string in the notation slowapi understands."""
        return f"{self.rate_limit_max_requests} per {self.rate_limit_window_seconds} second"

    @property
    def ttl_overrides(self) -> dict[str, int]:
        """Configured TTL overrides keyed by volatility class value."""
        overrides = {
            "historical": self.cache_ttl_historical,
            "current_season": self.cache_ttl_current,
            "live_race": self.cache_ttl_live,
            "default": self.cache_ttl_default,
        }
        return {k: v for k, v in overrides.items() if v is not None}

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
