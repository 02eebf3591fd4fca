"""
Double-submit CSRF protection for the profile forms.

GET endpoints hand out a token through `issue_csrf_token`, which also stores it
in a cookie the page script can read. Every form post declares
`Depends(require_csrf)`: the submitted `csrf_token` field (or the
X-CSRF-Token header) must equal the cookie, and a browser-supplied Origin or
Referer must point at this server or at PUBLIC_BASE_URL.
"""
from __future__ import annotations

import secrets
from urllib.parse import urlsplit

from fastapi import Form, HTTPException, Request, Response

from noteboard.core.config import get_settings

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "x-csrf-token"
CSRF_MIN_LENGTH = 16
CSRF_COOKIE_MAX_AGE = 7 * 24 * 60 * 60


def issue_csrf_token(request: Request, response: Response) -> str:
    """Reuse the caller's token when it looks sound, otherwise mint one; refresh the cookie."""
    token = request.cookies.get(CSRF_COOKIE_NAME) or ""
    if len(token) < CSRF_MIN_LENGTH:
        token = secrets.token_urlsafe(32)
    response.set_cookie(
        CSRF_COOKIE_NAME,
        token,
        max_age=CSRF_COOKIE_MAX_AGE,
        httponly=False,
        secure=get_settings().app_env == "prod",
        samesite="strict",
        path="/",
    )
    return token


def _origin_of(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}".lower()


def _trusted_origins(request: Request) -> set[str]:
    trusted = {_origin_of(str(request.base_url))}
    public = _origin_of(get_settings().public_base_url)
    if public:
        trusted.add(public)
    return trusted


def _check_origin(request: Request) -> None:
    source = request.headers.get("origin") or request.headers.get("referer")
    if not source:
        return
    if _origin_of(source) not in _trusted_origins(request):
        raise HTTPException(403, "Invalid origin.")


def require_csrf(request: Request, csrf_token: str = Form("")) -> None:
    cookie_token = request.cookies.get(CSRF_COOKIE_NAME) or ""
    supplied = csrf_token.strip() or (request.headers.get(CSRF_HEADER_NAME) or "").strip()
    if not cookie_token or not supplied:
        raise HTTPException(403, "Missing CSRF token.")
    if not secrets.compare_digest(cookie_token.encode(), supplied.encode()):
        raise HTTPException(403, "Invalid CSRF token.")
    _check_origin(request)
