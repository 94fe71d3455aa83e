"""
Application settings loaded from environment variables (pydantic-settings).

Values come from the process environment, then `.env.local`, then `.env`.
Missing or malformed required values raise a `ValidationError` at startup so
the process never serves traffic with a half-configured environment.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["development", "production", "test"]


def sanitize_database_url(url: str) -> str:
    """
    Drop `sslmode` from the query string; asyncpg rejects it as a DSN option.
    """
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


class Settings(BaseSettings):
    PORT: int = Field(default=3000, ge=1, le=65535)

    ENVIRONMENT: Environment = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "NODE_ENV"),
    )

    DATABASE_URL: str = Field(..., min_length=1)
    DATABASE_TEST_URL: str | None = None

    DB_POOL_MIN_SIZE: int = Field(default=1, ge=1)
    DB_POOL_MAX_SIZE: int = Field(default=5, ge=1)
    DB_COMMAND_TIMEOUT: float = Field(default=30.0, gt=0)

    JWT_SECRET: str = Field(..., min_length=1)
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MIN: int = Field(default=60 * 24 * 7, ge=1)

    # Comma-separated list, e.g. "http://localhost:5173,https://example.com"
    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_test_database(self) -> "Settings":
        if self.ENVIRONMENT == "test" and not self.DATABASE_TEST_URL:
            raise ValueError("DATABASE_TEST_URL must be set when ENVIRONMENT is 'test'.")
        if self.DB_POOL_MIN_SIZE > self.DB_POOL_MAX_SIZE:
            raise ValueError("DB_POOL_MIN_SIZE cannot exceed DB_POOL_MAX_SIZE.")
        return self

    @property
    def is_test(self) -> bool:
        return self.ENVIRONMENT == "test"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def current_database_url(self) -> str:
        url = self.DATABASE_TEST_URL if self.is_test else self.DATABASE_URL
        return sanitize_database_url(url or "")

    @property
    def log_level(self) -> str:
        return {
            "development": "DEBUG",
            "production": "INFO",
            "test": "CRITICAL",
        }[self.ENVIRONMENT]

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Parse the environment once per process.

    Only entry points (server, migration CLI) call this; the application
    receives its `Settings` explicitly through `create_app`.
    """
    return Settings()
