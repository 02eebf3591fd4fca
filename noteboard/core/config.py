"""
Configuration helpers for the Noteboard backend.

Routers/services read settings through get_settings() instead of fetching
os.environ directly; tests clear the cache after patching the environment.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    public_base_url: str
    database_url: str
    session_ttl_seconds: int
    password_min_length: int
    totp_issuer: str
    totp_valid_window: int
    delete_account_verify_hash: bool
    log_level: str
    rate_limit_attempts: int
    rate_limit_window_seconds: int


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _bool(value: str | None, default: bool = False) -> bool:
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "on"}

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        database_url=os.getenv("DATABASE_URL", ""),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS", "2592000"), 2592000),
        password_min_length=_int(os.getenv("PASSWORD_MIN_LENGTH", "8"), 8),
        totp_issuer=os.getenv("TOTP_ISSUER", "Noteboard"),
        totp_valid_window=_int(os.getenv("TOTP_VALID_WINDOW", "1"), 1),
        delete_account_verify_hash=_bool(os.getenv("DELETE_ACCOUNT_VERIFY_HASH"), False),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        rate_limit_attempts=_int(os.getenv("RATE_LIMIT_ATTEMPTS", "10"), 10),
        rate_limit_window_seconds=_int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "300"), 300),
    )
