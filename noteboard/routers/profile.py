from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pydantic import PositiveInt, TypeAdapter, ValidationError

from noteboard.core.csrf import issue_csrf_token, require_csrf
from noteboard.core.rate_limiter import limit_attempts
from noteboard.db.models import User
from noteboard.domain.accounts import can_manage
from noteboard.services.account_service import LOGIN_PATH, AccountService
from noteboard.services.mfa_service import MFAService
from noteboard.services.results import ActionResult, Redirect
from noteboard.services.session_service import (
    CurrentUser,
    clear_session_cookie,
    current_session,
    delete_session,
    session_token,
)

router = APIRouter(prefix="/profile", tags=["profile"])
account_service = AccountService()
mfa_service = MFAService()

_user_id = TypeAdapter(PositiveInt)
NOT_ALLOWED = "You are not allowed to perform this action."


def _public_profile(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "mfa": bool(user.mfa),
        "sort_boards_by": user.sort_boards_by,
        "sort_notes_by": user.sort_notes_by,
    }


def _parse_user_id(value: str) -> Optional[int]:
    try:
        return _user_id.validate_python(value)
    except ValidationError:
        return None


def _authorize(request: Request, target: str) -> Optional[CurrentUser]:
    """
    Resolve the caller and check it may act on `target`.

    Returns None for anonymous callers. An unparsable target is left for the
    service to reject during validation.
    """
    caller = current_session(request).user
    if caller is None:
        return None
    user_id = _parse_user_id(target)
    if user_id is not None and not can_manage(caller, user_id):
        raise HTTPException(403, NOT_ALLOWED)
    return caller


def _respond(request: Request, outcome: ActionResult | Redirect) -> Response:
    if isinstance(outcome, Redirect):
        response = RedirectResponse(outcome.location, status_code=301 if outcome.permanent else 303)
        if outcome.clear_session:
            delete_session(session_token(request))
            clear_session_cookie(response)
        return response
    return JSONResponse(outcome.to_dict())


def _login_redirect() -> RedirectResponse:
    return RedirectResponse(LOGIN_PATH, status_code=303)


@router.get("/{user_id}")
def read_profile(user_id: int, request: Request, response: Response):
    found = account_service.get_profile(current_session(request).user, user_id)
    if isinstance(found, Redirect):
        return _respond(request, found)
    if found is None:
        raise HTTPException(404, "Profile not found.")
    return {"profile": _public_profile(found), "csrf_token": issue_csrf_token(request, response)}


@router.get("/{user_id}/mfa/enroll")
def mfa_enrollment(user_id: int, request: Request, response: Response):
    found = account_service.get_profile(current_session(request).user, user_id)
    if isinstance(found, Redirect):
        return _respond(request, found)
    if found is None:
        raise HTTPException(404, "Profile not found.")
    enrollment = mfa_service.start_enrollment(found.email)
    return {
        "secret": enrollment.secret,
        "otpauth_uri": enrollment.otpauth_uri,
        "qr_code": enrollment.qr_code,
        "csrf_token": issue_csrf_token(request, response),
    }


@router.post("/update", dependencies=[Depends(require_csrf)])
def update_profile(
    request: Request,
    id: str = Form(""),
    name: str = Form(""),
    email: str = Form(""),
):
    caller = _authorize(request, id)
    if caller is None:
        return _login_redirect()
    outcome = account_service.update_profile(
        {"id": id, "name": name, "email": email},
        caller=caller,
        session_token=session_token(request),
    )
    return _respond(request, outcome)


@router.post("/password", dependencies=[Depends(limit_attempts("profile:password")), Depends(require_csrf)])
def update_password(
    request: Request,
    id: str = Form(""),
    current: str = Form(""),
    password: str = Form(""),
    confirm: str = Form(""),
):
    if _authorize(request, id) is None:
        return _login_redirect()
    outcome = account_service.update_password({"id": id, "current": current, "password": password, "confirm": confirm})
    return _respond(request, outcome)


@router.post("/backup", dependencies=[Depends(require_csrf)])
def backup_data(request: Request, userId: str = Form("")):
    if _authorize(request, userId) is None:
        return _login_redirect()
    outcome = account_service.backup_data({"userId": userId})
    if not outcome.success:
        return _respond(request, outcome)
    return Response(
        content=outcome.data,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="backup-{userId.strip()}.json"'},
    )


@router.post("/delete", dependencies=[Depends(limit_attempts("profile:delete")), Depends(require_csrf)])
def delete_account(
    request: Request,
    userId: str = Form(""),
    password: str = Form(""),
):
    if _authorize(request, userId) is None:
        return _login_redirect()
    outcome = account_service.delete_account({"userId": userId, "password": password})
    return _respond(request, outcome)


@router.post("/mfa", dependencies=[Depends(limit_attempts("profile:mfa")), Depends(require_csrf)])
def update_mfa(
    request: Request,
    id: str = Form(""),
    secret: str = Form(""),
    password: str = Form(""),
):
    if _authorize(request, id) is None:
        return _login_redirect()
    return _respond(request, mfa_service.update_mfa({"id": id, "secret": secret, "password": password}))


@router.post("/mfa/delete", dependencies=[Depends(limit_attempts("profile:mfa")), Depends(require_csrf)])
def delete_mfa(
    request: Request,
    id: str = Form(""),
    password: str = Form(""),
):
    if _authorize(request, id) is None:
        return _login_redirect()
    return _respond(request, mfa_service.delete_mfa({"id": id, "password": password}))
