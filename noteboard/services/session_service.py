"""Session helpers (issue tokens, cookies, validation)."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request, Response

from noteboard.core.config import get_settings
from noteboard.db.models import UserSession
from noteboard.repositories.account_repository import AccountRepository

SESSION_COOKIE_NAME = "session"

logger = logging.getLogger(__name__)
_repository = AccountRepository()


@dataclass(frozen=True)
class CurrentUser:
    """Identity of the caller, resolved from its session token."""

    id: int
    email: str
    name: Optional[str]
    role: str
    mfa: bool


@dataclass(frozen=True)
class SessionValidation:
    session: Optional[UserSession]
    user: Optional[CurrentUser]


_EMPTY = SessionValidation(session=None, user=None)


def _ttl() -> timedelta:
    return timedelta(seconds=max(60, get_settings().session_ttl_seconds))


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)


def issue_session(user_id: int) -> str:
    """Create a new session token for `user_id` and persist it."""
    expires_at = datetime.now(timezone.utc) + _ttl()
    return _repository.create_session(user_id, expires_at)


def validate_session_token(token: Optional[str]) -> SessionValidation:
    """
    Resolve `token` into its session and a freshly read user identity.

    Expired tokens are deleted. Sessions past half of their lifetime are
    extended so active users stay signed in.
    """
    if not token:
        return _EMPTY
    entity = _repository.find_session(token)
    if not entity:
        return _EMPTY
    now = datetime.now(timezone.utc)
    expires_at = _as_utc(entity.expires_at)
    if expires_at <= now:
        _repository.delete_session(token)
        return _EMPTY
    user = _repository.get_user(entity.user_id)
    if not user:
        _repository.delete_session(token)
        return _EMPTY
    ttl = _ttl()
    if expires_at - now < ttl / 2:
        expires_at = now + ttl
        _repository.extend_session(token, expires_at)
        entity.expires_at = expires_at
        logger.debug("Extended session for user %s", user.id)
    current = CurrentUser(id=user.id, email=user.email, name=user.name, role=user.role, mfa=bool(user.mfa))
    return SessionValidation(session=entity, user=current)


def session_token(request: Request) -> Optional[str]:
    return request.cookies.get(SESSION_COOKIE_NAME)


def current_session(request: Request) -> SessionValidation:
    """Validate the session cookie of the current request, if any."""
    return validate_session_token(session_token(request))


def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.app_env == "prod",
        samesite="strict",
        max_age=settings.session_ttl_seconds,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")


def delete_session(token: Optional[str]) -> None:
    """Remove a session token from the store."""
    if not token:
        return
    _repository.delete_session(token)
