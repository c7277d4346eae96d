"""
Login Risk Engine - Configuration Settings

Centralized configuration using Pydantic Settings for type-safe
environment variable handling with validation. Scoring weights,
timeouts and thresholds live in the YAML risk policy (see policy.py);
this module holds process-level and provider-tuning settings.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Example: MOCK_MODE=false switches providers to the real lookup APIs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application Settings
    # =========================================================================
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    app_debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    app_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )
    mock_mode: bool = Field(
        default=True,
        description="Use deterministic mock lookups instead of external APIs"
    )
    risk_policy_path: str = Field(
        default="config/risk_policy.yaml",
        description="Path to the YAML risk policy"
    )

    # =========================================================================
    # Ledger Configuration
    # =========================================================================
    ledger_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Where baselines and attempt records are stored"
    )

    # =========================================================================
    # Redis Configuration
    # =========================================================================
    redis_host: str = Field(
        default="localhost",
        description="Redis server hostname"
    )
    redis_port: int = Field(
        default=6379,
        description="Redis server port"
    )
    redis_db: int = Field(
        default=0,
        description="Redis database number"
    )
    redis_key_prefix: str = Field(
        default="riskgate:",
        description="Prefix for all Redis keys to avoid conflicts"
    )
    redis_password: str | None = Field(
        default=None,
        description="Redis password (optional)"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def redis_url(self) -> str:
        """Construct Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # =========================================================================
    # PostgreSQL Configuration (audit trail)
    # =========================================================================
    audit_enabled: bool = Field(
        default=False,
        description="Copy every attempt record to the Postgres audit table"
    )
    postgres_host: str = Field(
        default="localhost",
        description="PostgreSQL server hostname"
    )
    postgres_port: int = Field(
        default=5432,
        description="PostgreSQL server port"
    )
    postgres_db: str = Field(
        default="riskgate",
        description="PostgreSQL database name"
    )
    postgres_user: str = Field(
        default="riskgate",
        description="PostgreSQL username"
    )
    postgres_password: str = Field(
        default="",
        description="PostgreSQL password (set via POSTGRES_PASSWORD env var)"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL for asyncpg."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # =========================================================================
    # API Configuration
    # =========================================================================
    api_host: str = Field(
        default="0.0.0.0",
        description="API server bind address"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )

    # =========================================================================
    # Security / Access Control
    # =========================================================================
    api_token: str | None = Field(
        default=None,
        description="API token for assessment endpoints (optional)"
    )
    admin_token: str | None = Field(
        default=None,
        description="Admin token for policy reload (optional)"
    )
    metrics_token: str | None = Field(
        default=None,
        description="Token required to access /metrics (optional)"
    )
    cors_allow_origins: str = Field(
        default="http://localhost:5173,http://localhost:8080",
        description="Comma-separated list of allowed CORS origins"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cors_allow_origins_list(self) -> list[str]:
        """Return CORS origins as a list."""
        if not self.cors_allow_origins:
            return []
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    # =========================================================================
    # External Lookup APIs (used when mock_mode is off)
    # =========================================================================
    twilio_account_sid: str | None = Field(
        default=None,
        description="Twilio account SID for Lookup v2"
    )
    twilio_auth_token: str | None = Field(
        default=None,
        description="Twilio auth token for Lookup v2"
    )
    twilio_lookup_base_url: str = Field(
        default="https://lookups.twilio.com/v2/PhoneNumbers",
        description="Twilio Lookup v2 base URL"
    )
    ipinfo_token: str | None = Field(
        default=None,
        description="ipinfo.io API token"
    )
    ipinfo_base_url: str = Field(
        default="https://ipinfo.io",
        description="ipinfo.io base URL"
    )

    @model_validator(mode="after")
    def _validate_production_security(self) -> "Settings":
        """Enforce required security settings in production."""
        if self.app_env == "production":
            missing: list[str] = []
            if not self.api_token:
                missing.append("API_TOKEN")
            if not self.admin_token:
                missing.append("ADMIN_TOKEN")
            if not self.metrics_token:
                missing.append("METRICS_TOKEN")
            if not self.mock_mode:
                if not (self.twilio_account_sid and self.twilio_auth_token):
                    missing.append("TWILIO_ACCOUNT_SID/TWILIO_AUTH_TOKEN")
                if not self.ipinfo_token:
                    missing.append("IPINFO_TOKEN")
            if missing:
                raise ValueError(
                    "Missing required settings for production: "
                    + ", ".join(missing)
                )
        return self

    # =========================================================================
    # Provider Tuning
    # These can be tuned via config without code changes
    # =========================================================================
    # Phone carrier
    phone_default_country_code: str = Field(
        default="91",
        description="Country code prefixed to bare national numbers"
    )
    phone_national_number_length: int = Field(
        default=10,
        description="Digit count of a national number without country code"
    )
    trusted_carriers: list[str] = Field(
        default=["Jio", "Airtel", "VI", "Vodafone Idea", "BSNL", "MTNL"],
        description="Carrier names considered reputable"
    )
    voip_carriers: list[str] = Field(
        default=["Skype", "WhatsApp", "Google Voice", "Truecaller"],
        description="Carrier names that indicate a VoIP line"
    )
    recent_port_days: int = Field(
        default=30,
        description="A port younger than this raises the carrier score"
    )

    # Geo / IP
    geo_distance_saturation_km: float = Field(
        default=5000.0,
        gt=0,
        description="Distance at which the location component saturates at 1.0"
    )
    high_risk_countries: list[str] = Field(
        default=["CN", "RU", "IR", "KP"],
        description="ISO codes whose IPs raise the geo score"
    )

    # Device
    device_first_seen_score: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Neutral score for a device on an identity with no baseline"
    )

    # Behavioral
    behavioral_full_confidence_samples: int = Field(
        default=10,
        ge=2,
        description="Keystroke count at which behavioral confidence reaches 1.0"
    )

    # SIM swap
    sim_swap_recent_days: int = Field(
        default=7,
        description="Swaps younger than this are weighted most heavily"
    )
    sim_swap_window_days: int = Field(
        default=30,
        description="Swaps older than this no longer raise the score"
    )

    # Lookups
    lookup_http_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        description="HTTP client timeout for external lookups"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to avoid re-parsing environment on every call.
    """
    return Settings()


# Singleton settings instance for easy import
settings = get_settings()
