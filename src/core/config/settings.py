# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the
Secretaria Online service. Settings are loaded from environment variables
with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Self

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-this-in-production"


class DatabaseSettings(BaseSettings):
    """Database configuration.

    The single database stores users, the academic catalog, documents,
    enrollments, contracts and grades.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        dsn: Explicit connection URL, overrides the components when set.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        echo: Log emitted SQL statements.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "secretaria"
    password: SecretStr = SecretStr("secretaria_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "secretaria"
    dsn: str | None = None
    pool_size: int = 10
    max_overflow: int = 20
    echo: bool = False

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.dsn:
            return self.dsn
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"

    @property
    def is_sqlite(self) -> bool:
        """Check whether the configured URL targets SQLite."""
        return self.url.startswith("sqlite")


class RedisSettings(BaseSettings):
    """Redis configuration for the task broker and rate limit storage.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        password: Redis password.
        database: Redis database number.
        max_connections: Maximum connection pool size.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 6379
    password: SecretStr | None = None
    database: int = 0
    max_connections: int = 50

    @property
    def url(self) -> str:
        """Build the Redis connection URL."""
        if self.password and self.password.get_secret_value():
            pwd = self.password.get_secret_value()
            return f"redis://:{pwd}@{self.host}:{self.port}/{self.database}"
        return f"redis://{self.host}:{self.port}/{self.database}"


class JWTSettings(BaseSettings):
    """JWT authentication configuration.

    Tokens are issued by the identity provider; this service only
    verifies them.

    Attributes:
        secret_key: Secret key for verifying tokens.
        algorithm: JWT signing algorithm.
        access_token_expire_minutes: Lifetime of tokens minted by helpers.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr(DEFAULT_JWT_SECRET)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(
        default=30,
        validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )


class RateLimitSettings(BaseSettings):
    """Rate limiting configuration.

    Attributes:
        enabled: Whether rate limits are enforced.
        requests_per_minute: Default limit per client.
        upload_limit: Limit applied to document uploads.
        storage_uri: slowapi storage backend, defaults to Redis.
    """

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        extra="ignore",
    )

    enabled: bool = True
    requests_per_minute: int = 60
    upload_limit: str = "10/minute"
    storage_uri: str | None = None


class CORSSettings(BaseSettings):
    """CORS configuration for API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
        allow_methods: Allowed HTTP methods.
        allow_headers: Allowed HTTP headers.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True
    allow_methods: list[str] = ["*"]
    allow_headers: list[str] = ["*"]

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into a list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class APISettings(BaseSettings):
    """API server configuration.

    Attributes:
        host: Host to bind to.
        port: Port to listen on.
        workers: Number of worker processes.
        reload: Whether to enable auto-reload.
        run_migrations: Apply pending migrations on startup.
        seed_catalog: Seed document types and the default template on startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 3000
    workers: int = 2
    reload: bool = False
    run_migrations: bool = True
    seed_catalog: bool = True


class WorkerSettings(BaseSettings):
    """Background worker configuration.

    Attributes:
        processes: Number of worker processes.
        threads: Number of threads per process.
        scheduler_enabled: Whether the API process runs the cron scheduler.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKER_",
        extra="ignore",
    )

    processes: int = 2
    threads: int = 4
    scheduler_enabled: bool = True


class StorageSettings(BaseSettings):
    """Blob storage configuration.

    Attributes:
        root: Directory holding uploaded documents and rendered contracts.
        contracts_prefix: Key prefix for rendered contract documents.
    """

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore",
    )

    root: Path = Path("./uploads")
    contracts_prefix: str = "contracts"


class ContractSettings(BaseSettings):
    """Contract rendering configuration.

    Attributes:
        institution_name: Value substituted into the institutionName placeholder.
        render_on_generate: Render the document inside the generate call.
        regeneration_batch_size: Contracts re-rendered per scheduled run.
        regeneration_cron: Cron expression for the re-render sweep.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONTRACT_",
        extra="ignore",
    )

    institution_name: str = "Secretaria Online"
    render_on_generate: bool = True
    regeneration_batch_size: int = 100
    regeneration_cron: str = "30 3 * * *"


class ReenrollmentSettings(BaseSettings):
    """Term rollover sweep configuration.

    Attributes:
        sweep_enabled: Whether the daily sweep is scheduled.
        sweep_cron: Cron expression (minute hour day month weekday).
    """

    model_config = SettingsConfigDict(
        env_prefix="REENROLLMENT_",
        extra="ignore",
    )

    sweep_enabled: bool = True
    sweep_cron: str = "0 3 * * *"

    @field_validator("sweep_cron")
    @classmethod
    def validate_cron(cls, value: str) -> str:
        """Reject cron expressions without five fields."""
        if len(value.split()) != 5:
            raise ValueError(f"Invalid cron expression: {value}")
        return value


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, test, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        db: Database settings.
        redis: Redis settings.
        jwt: JWT authentication settings.
        rate_limit: Rate limiting settings.
        cors: CORS settings.
        api: API server settings.
        worker: Background worker settings.
        storage: Blob storage settings.
        contract: Contract rendering settings.
        reenrollment: Term rollover sweep settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "test", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    api: APISettings = Field(default_factory=APISettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    contract: ContractSettings = Field(default_factory=ContractSettings)
    reenrollment: ReenrollmentSettings = Field(default_factory=ReenrollmentSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.jwt.secret_key.get_secret_value() == DEFAULT_JWT_SECRET:
                raise ValueError(
                    "JWT secret key must be changed from default in production. "
                    "Set JWT_SECRET_KEY environment variable."
                )
            if self.debug:
                raise ValueError("Debug mode must be disabled in production. Set DEBUG=false.")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
