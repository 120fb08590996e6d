"""
Configuration Management for Fintrack

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational store and connection pool configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        default="sqlite:///./fintrack.db",
        description="SQLAlchemy database URL"
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Connections kept open in the pool"
    )
    max_overflow: int = Field(
        default=10,
        ge=0,
        description="Extra connections allowed beyond pool_size"
    )
    pool_recycle: int = Field(
        default=300,
        description="Seconds before a pooled connection is recycled"
    )
    pool_pre_ping: bool = Field(
        default=True,
        description="Test connections before handing them out"
    )
    echo: bool = Field(
        default=False,
        description="Log every SQL statement"
    )

    @field_validator('url')
    @classmethod
    def normalize_postgres_scheme(cls, v: str) -> str:
        """Hosting providers still hand out postgres:// URLs."""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class SecuritySettings(BaseSettings):
    """Password hashing and policy configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    hash_scheme: str = Field(
        default="pbkdf2_sha256",
        description="passlib scheme used for new password hashes"
    )
    password_min_length: int = Field(
        default=8,
        ge=6,
        le=128,
        description="Minimum length of a new password"
    )


class CorsSettings(BaseSettings):
    """Cross-origin policy for the browser frontend."""

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    allow_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed origins"
    )
    allow_credentials: bool = Field(
        default=True,
        description="Allow cookies and auth headers cross-origin"
    )

    @property
    def origins_list(self) -> list[str]:
        """Get allowed origins as a list."""
        return [o.strip() for o in self.allow_origins.split(",") if o.strip()]


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )
    port: int = Field(
        default=3400,
        description="Port the API listens on"
    )

    # Ledger behaviour
    recent_transactions_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="How many rows the recent-transactions view returns"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def security(self) -> SecuritySettings:
        return SecuritySettings()

    @property
    def cors(self) -> CorsSettings:
        return CorsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    `<name>_error` entries for the groups that failed to load.
    """
    results = {}
    settings = get_settings()

    for name in ("database", "security", "cors", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
