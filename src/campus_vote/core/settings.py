"""Application settings and configuration.

This module defines all configuration options for the Campus Vote service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Campus Vote", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Security
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./campus_vote.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sqlite_busy_timeout_seconds: float = Field(default=30.0, alias="SQLITE_BUSY_TIMEOUT_SECONDS")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Redis configuration for rate limits and lockouts
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")
    throttle_backend: str = Field(default="memory", alias="THROTTLE_BACKEND")

    # Mobile numbers without a leading "+" and of national length get this prefix
    default_country_code: str = Field(default="91", alias="DEFAULT_COUNTRY_CODE")

    # One-time codes
    otp_length: int = Field(default=6, alias="OTP_LENGTH")
    otp_ttl_seconds: int = Field(default=300, alias="OTP_TTL_SECONDS")
    otp_request_limit: int = Field(default=3, alias="OTP_REQUEST_LIMIT")
    otp_request_window_seconds: int = Field(default=300, alias="OTP_REQUEST_WINDOW_SECONDS")
    otp_max_failed_attempts: int = Field(default=3, alias="OTP_MAX_FAILED_ATTEMPTS")
    otp_lockout_seconds: int = Field(default=1800, alias="OTP_LOCKOUT_SECONDS")
    otp_api_key: str | None = Field(default=None, alias="OTP_API_KEY")

    # Voting sessions and ballots
    session_ttl_seconds: int = Field(default=600, alias="SESSION_TTL_SECONDS")
    ballot_time_granularity_seconds: int = Field(
        default=60,
        alias="BALLOT_TIME_GRANULARITY_SECONDS",
    )

    # SMS delivery
    sms_provider: str = Field(default="console", alias="SMS_PROVIDER")
    sms_http_timeout_seconds: float = Field(default=10.0, alias="SMS_HTTP_TIMEOUT_SECONDS")
    twilio_account_sid: str | None = Field(default=None, alias="TWILIO_ACCOUNT_SID")
    twilio_auth_token: str | None = Field(default=None, alias="TWILIO_AUTH_TOKEN")
    twilio_from_number: str | None = Field(default=None, alias="TWILIO_FROM_NUMBER")
    fast2sms_api_key: str | None = Field(default=None, alias="FAST2SMS_API_KEY")

    # Background cleanup of expired codes and sessions
    reaper_enabled: bool = Field(default=False, alias="REAPER_ENABLED")
    reaper_interval_seconds: float = Field(default=300.0, alias="REAPER_INTERVAL_SECONDS")
    reaper_grace_seconds: int = Field(default=86_400, alias="REAPER_GRACE_SECONDS")

    # CORS configuration for the voter frontend
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def is_production(self) -> bool:
        """Return True when running with production safeguards."""
        return self.environment.lower() == "production"


settings = Settings()  # type: ignore[call-arg]
