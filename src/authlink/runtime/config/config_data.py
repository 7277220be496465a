"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

import os
from typing import Literal

from loguru import logger
from pydantic import BaseModel, Field, computed_field


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="plain", description="Log format")
    file: str | None = Field(default=None, description="Log file path (no file sink when unset)")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./authlink.db",
        description="Database connection URL",
    )
    environment_mode: str = Field(
        default="development", description="Environment mode: development, production or test"
    )
    pool_size: int = Field(default=20, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    isolation_level: Literal["SERIALIZABLE", "REPEATABLE READ", "READ COMMITTED"] = Field(
        default="SERIALIZABLE",
        description="Transaction isolation level on server databases; SQLite uses BEGIN IMMEDIATE",
    )
    max_retries: int = Field(
        default=5,
        ge=0,
        description="Retries of a transaction that failed on a serialization conflict",
    )
    retry_backoff_ms: int = Field(
        default=25, ge=0, description="Linear backoff between transaction retries"
    )
    sqlite_busy_timeout: int = Field(
        default=20, description="Seconds SQLite waits on a locked database"
    )
    password_env_var: str | None = Field(
        default=None,
        description="Environment variable name containing database password",
    )
    password_file: str | None = Field(
        default=None,
        description="Path to file containing database password",
    )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @computed_field
    @property
    def password(self) -> str | None:
        """
        Get the database password from the appropriate source.
        1. In development or test mode, parse it from the URL
        2. In production mode, read it from the mounted secrets file named by
           `password_file` or the environment variable named by `password_env_var`
        """
        if self.is_sqlite:
            return None

        if self.environment_mode in ("development", "test"):
            from sqlalchemy.engine import make_url

            return make_url(self.url).password
        elif self.environment_mode == "production":
            if self.password_file:
                try:
                    with open(self.password_file) as f:
                        return f.read().strip()
                except OSError as e:
                    raise ValueError(
                        "Failed to read database password from file."
                    ) from e
            elif self.password_env_var:
                password = os.getenv(self.password_env_var)
                if password:
                    return password
                raise ValueError(
                    f"Environment variable {self.password_env_var} not set"
                )
            else:
                raise ValueError(
                    "In production mode, either password_file or password_env_var must be set"
                )
        else:
            raise ValueError(
                "Invalid environment_mode; must be 'development', 'production', or 'test'"
            )

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the database connection string with password if provided."""
        if self.is_sqlite:
            return self.url

        from sqlalchemy.engine import make_url

        base_url = make_url(self.url)

        if base_url.password:
            if self.environment_mode == "production":
                logger.warning(
                    "Database URL contains a password in production mode; "
                    "consider using a secrets file or environment variable."
                )
            return base_url.render_as_string(hide_password=False)

        resolved_password = self.password
        if resolved_password:
            base_url = base_url.set(password=resolved_password)
        return base_url.render_as_string(hide_password=False)


class CredentialsConfig(BaseModel):
    """Credential linking policy."""

    protect_last_credential: bool = Field(
        default=False,
        description="Refuse to revoke a user's only active credential",
    )
    purge_unlinked_on_user_delete: bool = Field(
        default=True,
        description=(
            "Delete a user's unlinked credential instances as part of user deletion; "
            "when disabled, any remaining instance blocks the deletion"
        ),
    )


class SchemaConfig(BaseModel):
    """Schema evolution configuration."""

    auto_upgrade: bool = Field(
        default=False, description="Apply pending transformations on startup"
    )
    advisory_lock_key: int = Field(
        default=7_311_426,
        description="PostgreSQL advisory lock key taken while a transformation commits",
    )


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    name: str = Field(default="authlink", description="Application name")


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    credentials: CredentialsConfig = Field(
        default_factory=CredentialsConfig, description="Credential linking policy"
    )
    schema_evolution: SchemaConfig = Field(
        default_factory=SchemaConfig, description="Schema evolution configuration"
    )
