# src/ensemble/config/config.py
"""Configuration system for Ensemble."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field


class _EnvSection(BaseModel):
    """Base for configuration sections populated from environment variables."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DatabaseConfig(_EnvSection):
    """Database configuration settings."""

    database_url: str = Field(default="", validation_alias="DATABASE_URL")
    postgres_user: str = Field(default="ensemble", validation_alias="POSTGRES_USER")
    postgres_password: str = Field(
        default="ensemble_password", validation_alias="POSTGRES_PASSWORD"
    )
    postgres_db: str = Field(default="ensemble", validation_alias="POSTGRES_DB")
    postgres_host: str = Field(default="localhost", validation_alias="POSTGRES_HOST")
    postgres_port: str = Field(default="5432", validation_alias="POSTGRES_PORT")
    echo: bool = Field(default=False, validation_alias="DATABASE_ECHO")

    @property
    def postgres_url(self) -> str:
        """Generate PostgreSQL connection URL with psycopg driver."""
        return (
            f"postgresql+psycopg://{self.postgres_user}:{self.postgres_password}@"
            f"{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def url(self) -> str:
        """Return ``DATABASE_URL`` when set, otherwise the PostgreSQL URL."""
        return self.database_url or self.postgres_url


class SystemConfig(_EnvSection):
    """System configuration settings."""

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    port: int = Field(default=8080, validation_alias="PORT")
    cors_origins: str = Field(
        default="http://localhost:3000", validation_alias="CORS_ORIGINS"
    )


class BootstrapConfig(_EnvSection):
    """Startup bootstrap settings."""

    auto_create_schema: bool = Field(default=True, validation_alias="AUTO_CREATE_SCHEMA")
    db_wait_timeout: float = Field(default=60.0, validation_alias="DB_WAIT_TIMEOUT")
    db_wait_attempts: int = Field(default=20, validation_alias="DB_WAIT_ATTEMPTS")
    backoff_initial: float = Field(default=0.5, validation_alias="DB_WAIT_BACKOFF")
    backoff_factor: float = Field(default=1.5, validation_alias="DB_WAIT_BACKOFF_FACTOR")


class EnsembleConfig(BaseModel):
    """Main configuration class."""

    database: DatabaseConfig = DatabaseConfig()
    system: SystemConfig = SystemConfig()
    bootstrap: BootstrapConfig = BootstrapConfig()

    @classmethod
    def load(cls, environ: Mapping[str, str] | None = None) -> EnsembleConfig:
        """Load configuration from environment variables."""
        env = dict(os.environ if environ is None else environ)
        return cls(
            database=DatabaseConfig.model_validate(env),
            system=SystemConfig.model_validate(env),
            bootstrap=BootstrapConfig.model_validate(env),
        )


# Global configuration instance
config = EnsembleConfig.load()
