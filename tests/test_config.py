from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings, sanitize_database_url


def _settings(**values) -> Settings:
    return Settings(_env_file=None, **values)


def test_requires_database_url_and_jwt_secret(monkeypatch):
    for name in ("DATABASE_URL", "JWT_SECRET", "ENVIRONMENT", "NODE_ENV"):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(ValidationError) as exc_info:
        _settings()

    missing = {error["loc"][0] for error in exc_info.value.errors()}
    assert {"DATABASE_URL", "JWT_SECRET"} <= missing


def test_reads_values_from_environment(monkeypatch):
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgresql://db/main")
    monkeypatch.setenv("JWT_SECRET", "s3cret")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("NODE_ENV", "production")

    cfg = _settings()

    assert cfg.PORT == 8080
    assert cfg.ENVIRONMENT == "production"
    assert cfg.is_production
    assert cfg.current_database_url == "postgresql://db/main"
    assert cfg.log_level == "INFO"


def test_defaults_to_development(monkeypatch):
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.delenv("NODE_ENV", raising=False)
    monkeypatch.delenv("PORT", raising=False)

    cfg = _settings(DATABASE_URL="postgresql://db/main", JWT_SECRET="s3cret")

    assert cfg.ENVIRONMENT == "development"
    assert cfg.PORT == 3000
    assert cfg.log_level == "DEBUG"


def test_test_environment_uses_test_database():
    cfg = _settings(
        ENVIRONMENT="test",
        DATABASE_URL="postgresql://db/main",
        DATABASE_TEST_URL="postgresql://db/test",
        JWT_SECRET="s3cret",
    )

    assert cfg.is_test
    assert cfg.current_database_url == "postgresql://db/test"


def test_test_environment_without_test_database_fails(monkeypatch):
    monkeypatch.delenv("DATABASE_TEST_URL", raising=False)

    with pytest.raises(ValidationError):
        _settings(ENVIRONMENT="test", DATABASE_URL="postgresql://db/main", JWT_SECRET="s3cret")


def test_rejects_unknown_environment():
    with pytest.raises(ValidationError):
        _settings(ENVIRONMENT="staging", DATABASE_URL="postgresql://db/main", JWT_SECRET="s3cret")


def test_sanitize_database_url_strips_sslmode_only():
    url = "postgresql://u:p@host:5432/db?sslmode=require&application_name=api"
    assert sanitize_database_url(url) == "postgresql://u:p@host:5432/db?application_name=api"
    assert sanitize_database_url("postgresql://host/db") == "postgresql://host/db"


def test_cors_origins_list():
    cfg = _settings(
        DATABASE_URL="postgresql://db/main",
        JWT_SECRET="s3cret",
        CORS_ORIGINS="http://a.test, http://b.test,",
    )
    assert cfg.cors_origins_list == ["http://a.test", "http://b.test"]
