"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Required fields (SECRET_KEY, ENCRYPTION_SALT) are
validated at load time. Integration credentials are optional: when one
is missing the matching integration reports "not configured" (503)
instead of failing at startup.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    All settings are optional with defaults except those validated in
    validate_required (secret_key, encryption_salt, cache_backend).
    """

    # App
    app_name: str = "edpsych-integration-gateway"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Database: sqlite+aiosqlite for development and tests, postgresql+asyncpg in production
    database_url: str = "sqlite+aiosqlite:///./edpsych_integrations.db"
    database_echo: bool = False
    db_pool_size: int | None = None
    db_max_overflow: int | None = None

    # Security
    secret_key: SecretStr = SecretStr("")
    algorithm: str = "HS256"
    api_token_expire_minutes: int = 60
    api_secret_hash_rounds: int = 12
    encryption_salt: SecretStr = SecretStr("")
    # Key management bootstrap: X-Admin-Secret accepted in place of a keys:manage token.
    admin_api_secret: SecretStr | None = None

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Request / middleware
    request_id_header: str = "X-Request-ID"
    rate_limit_enabled: bool = True

    # Cache: "memory" (bounded LRU, single process) or "redis"
    cache_backend: str = "memory"
    cache_max_entries: int = 10_000
    cache_sweep_interval_seconds: int = 60
    cache_ttl_search: int = 300
    cache_ttl_recommendations: int = 120
    cache_ttl_jwks: int = 3600
    lti_state_ttl_seconds: int = 600

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None

    # Outbound HTTP
    http_timeout_seconds: float = 15.0

    # HeyGen avatar video
    heygen_api_key: SecretStr | None = None
    heygen_api_base_url: str = "https://api.heygen.com"
    heygen_webhook_secret: SecretStr | None = None

    # Stripe billing webhooks
    stripe_webhook_secret: SecretStr | None = None
    stripe_webhook_tolerance_seconds: int = 300

    # LTI 1.3 tool
    lti_tool_base_url: str = "http://localhost:8000"

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_required(self) -> "Settings":
        """Validate required secrets and the cache backend choice."""
        if not self.secret_key.get_secret_value():
            raise ValueError(
                "SECRET_KEY is required. Generate with: openssl rand -hex 32."
            )
        if not self.encryption_salt.get_secret_value():
            raise ValueError(
                "ENCRYPTION_SALT is required. Generate with: openssl rand -hex 16."
            )
        if self.cache_backend not in ("memory", "redis"):
            raise ValueError(
                f"Invalid cache_backend '{self.cache_backend}'. "
                "Must be one of: 'memory', 'redis'"
            )
        if self.cache_max_entries < 1:
            raise ValueError("CACHE_MAX_ENTRIES must be at least 1")
        return self

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
