"""
Centralized configuration management using pydantic-settings.
This module provides a single source of truth for all application configuration.
"""


import os

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from taskboard.utils.logger import setup_logger

load_dotenv()


logger = setup_logger("core_config")


class Settings(BaseSettings):
    """
    Application settings managed by pydantic-settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        env_prefix="",
    )

    # ===== Database Configuration =====
    app_database_url: str | None = Field(
        default=None,
        alias="TASKBOARD_DATABASE_URL",
        description="Application database URL (postgresql+asyncpg:// or sqlite+aiosqlite://)",
    )

    db_echo: bool = Field(
        default=False,
        alias="DB_ECHO",
        description="Log every SQL statement issued by the engine",
    )

    # ===== Listing Configuration =====
    default_task_limit: int = Field(
        default=100,
        alias="DEFAULT_TASK_LIMIT",
        description="Number of tasks returned by GET /tasks when no limit is given",
    )

    # ===== Server Configuration =====
    server_host: str = Field(
        default="0.0.0.0", alias="SERVER_HOST", description="Server host address"
    )

    server_port: int = Field(
        default=3000, alias="SERVER_PORT", description="Server port number"
    )

    server_workers: int = Field(
        default=1, alias="SERVER_WORKERS", description="Number of uvicorn workers"
    )

    # ===== CORS Configuration =====
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_ORIGINS",
        description="CORS allowed origins",
    )

    cors_allow_credentials: bool = Field(
        default=False,
        alias="CORS_ALLOW_CREDENTIALS",
        description="Whether to allow credentials in CORS requests",
    )

    cors_allow_methods: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_METHODS",
        description="CORS allowed methods",
    )

    cors_allow_headers: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_HEADERS",
        description="CORS allowed headers",
    )

    # User-facing hint for database connection errors
    db_unavailable_hint: str = os.getenv(
        "DB_UNAVAILABLE_HINT",
        "Database connection failed. The server may be offline or network connectivity is down.",
    )

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate settings and log warnings for missing critical configurations."""
        if not self.app_database_url:
            logger.warning("TASKBOARD_DATABASE_URL environment variable not set.")

        if self.default_task_limit < 1:
            logger.warning(
                f"DEFAULT_TASK_LIMIT={self.default_task_limit} is not positive, using 100."
            )
            self.default_task_limit = 100

        return self


# Global settings instance
settings = Settings()
