from __future__ import annotations

import pytest

from noteboard.core import config as core_config


@pytest.fixture()
def fresh_settings():
    core_config.get_settings.cache_clear()
    yield core_config.get_settings
    core_config.get_settings.cache_clear()


def test_defaults(fresh_settings, monkeypatch):
    for name in ("APP_ENV", "SESSION_TTL_SECONDS", "DELETE_ACCOUNT_VERIFY_HASH", "TOTP_ISSUER", "PASSWORD_MIN_LENGTH", "RATE_LIMIT_ATTEMPTS", "RATE_LIMIT_WINDOW_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    settings = fresh_settings()
    assert settings.app_env == "dev"
    assert settings.session_ttl_seconds == 2592000
    assert settings.password_min_length == 8
    assert settings.totp_issuer == "Noteboard"
    assert settings.delete_account_verify_hash is False
    assert settings.rate_limit_attempts == 10
    assert settings.rate_limit_window_seconds == 300


def test_env_overrides_and_lenient_parsing(fresh_settings, monkeypatch):
    monkeypatch.setenv("APP_ENV", "PROD")
    monkeypatch.setenv("SESSION_TTL_SECONDS", "not-a-number")
    monkeypatch.setenv("DELETE_ACCOUNT_VERIFY_HASH", "yes")
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://notes.example.com/")
    settings = fresh_settings()
    assert settings.app_env == "prod"
    assert settings.session_ttl_seconds == 2592000
    assert settings.delete_account_verify_hash is True
    assert settings.public_base_url == "https://notes.example.com"
