from __future__ import annotations

import json

import pyotp
import pytest
from fastapi.testclient import TestClient

from noteboard.app import app
from noteboard.core.rate_limiter import reset_limits
from noteboard.core.security import verify_password
from noteboard.services.session_service import issue_session, validate_session_token

from conftest import DEFAULT_PASSWORD

CSRF = "csrf-token-for-tests-0123456789"


@pytest.fixture()
def client(db_env):
    reset_limits()
    with TestClient(app) as test_client:
        test_client.cookies.set("csrf_token", CSRF)
        yield test_client
    reset_limits()


def _login(client, user) -> str:
    token = issue_session(user.id)
    client.cookies.set("session", token)
    return token


def _post(client, path, data):
    return client.post(path, data={**data, "csrf_token": CSRF}, follow_redirects=False)


def test_profile_requires_login(client, make_user):
    user = make_user()
    response = client.get(f"/profile/{user.id}", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login"


def test_profile_hides_credentials(client, repo, make_user):
    user = make_user("ana@example.com")
    repo.set_mfa(user.id, "JBSWY3DPEHPK3PXP")
    _login(client, user)

    response = client.get(f"/profile/{user.id}")

    assert response.status_code == 200
    profile = response.json()["profile"]
    assert profile["email"] == "ana@example.com"
    assert profile["mfa"] is True
    assert "password_hash" not in profile
    assert "secret" not in profile
    assert response.headers["x-frame-options"] == "DENY"


def test_other_profiles_are_invisible_to_users(client, make_user):
    ana = make_user()
    bob = make_user()
    _login(client, ana)
    assert client.get(f"/profile/{bob.id}").status_code == 404


def test_admin_sees_any_profile(client, make_user):
    admin = make_user(role="admin")
    bob = make_user()
    _login(client, admin)
    assert client.get(f"/profile/{bob.id}").json()["profile"]["id"] == bob.id


def test_post_without_csrf_is_rejected(client, make_user):
    user = make_user()
    _login(client, user)
    response = client.post("/profile/update", data={"id": str(user.id), "name": "A", "email": "a@example.com"})
    assert response.status_code == 403


def test_anonymous_post_redirects_to_login(client, make_user):
    user = make_user()
    response = _post(client, "/profile/password", {"id": str(user.id), "current": "x", "password": "y", "confirm": "y"})
    assert response.status_code == 303
    assert response.headers["location"] == "/login"


def test_self_update_redirects_to_profile(client, repo, make_user):
    user = make_user("ana@example.com")
    _login(client, user)

    response = _post(client, "/profile/update", {"id": str(user.id), "name": "Ana B", "email": "ana.b@example.com"})

    assert response.status_code == 303
    assert response.headers["location"] == f"/profile/{user.id}"
    assert repo.get_user(user.id).email == "ana.b@example.com"


def test_users_cannot_change_other_accounts(client, repo, make_user):
    ana = make_user()
    bob = make_user()
    _login(client, ana)

    response = _post(
        client,
        "/profile/password",
        {"id": str(bob.id), "current": DEFAULT_PASSWORD, "password": "hijacked-1", "confirm": "hijacked-1"},
    )

    assert response.status_code == 403
    assert verify_password(DEFAULT_PASSWORD, repo.get_user(bob.id).password_hash)


def test_password_change_returns_json_result(client, make_user):
    user = make_user()
    _login(client, user)

    response = _post(
        client,
        "/profile/password",
        {"id": str(user.id), "current": DEFAULT_PASSWORD, "password": "brand-new-1", "confirm": "brand-new-2"},
    )

    assert response.status_code == 200
    assert response.json() == {"success": False, "message": "Passwords do not match.", "data": {"password": "brand-new-1"}}


def test_backup_is_a_download(client, repo, make_user):
    user = make_user("ana@example.com", name="Ana")
    repo.create_board(user.id, "Work")
    _login(client, user)

    response = _post(client, "/profile/backup", {"userId": str(user.id)})

    assert response.status_code == 200
    assert response.headers["content-disposition"] == f'attachment; filename="backup-{user.id}.json"'
    exported = json.loads(response.content)
    assert exported["boards"][0]["name"] == "Work"


def test_delete_account_clears_session(client, repo, make_user):
    user = make_user(password_hash="stored-column-value")
    token = _login(client, user)

    response = _post(client, "/profile/delete", {"userId": str(user.id), "password": "stored-column-value"})

    assert response.status_code == 301
    assert response.headers["location"] == "/login"
    assert 'session=""' in response.headers["set-cookie"] or "session=;" in response.headers["set-cookie"]
    assert repo.get_user(user.id) is None
    assert validate_session_token(token).user is None


def test_mfa_enrollment_flow(client, repo, make_user):
    user = make_user("ana@example.com")
    _login(client, user)

    enrollment = client.get(f"/profile/{user.id}/mfa/enroll").json()
    secret = enrollment["secret"]
    assert enrollment["otpauth_uri"].startswith("otpauth://totp/")

    enabled = _post(client, "/profile/mfa", {"id": str(user.id), "secret": secret, "password": pyotp.TOTP(secret).now()})
    assert enabled.json()["success"] is True
    assert repo.get_user(user.id).secret == secret

    removed = _post(client, "/profile/mfa/delete", {"id": str(user.id), "password": pyotp.TOTP(secret).now()})
    assert removed.json()["success"] is True
    assert repo.get_user(user.id).mfa is False


def test_profile_read_issues_csrf_cookie(db_env, make_user):
    user = make_user()
    with TestClient(app) as fresh:
        fresh.cookies.set("session", issue_session(user.id))
        response = fresh.get(f"/profile/{user.id}")

    token = response.json()["csrf_token"]
    assert len(token) >= 16
    assert f"csrf_token={token}" in response.headers["set-cookie"]


def test_csrf_header_is_accepted_and_foreign_origin_rejected(client, repo, make_user):
    user = make_user("ana@example.com")
    _login(client, user)
    data = {"id": str(user.id), "name": "Ana", "email": "ana@example.com"}

    via_header = client.post("/profile/update", data=data, headers={"X-CSRF-Token": CSRF}, follow_redirects=False)
    assert via_header.status_code == 303

    foreign = client.post(
        "/profile/update",
        data={**data, "csrf_token": CSRF},
        headers={"Origin": "https://evil.example.net"},
        follow_redirects=False,
    )
    assert foreign.status_code == 403
    assert foreign.json()["detail"] == "Invalid origin."


def test_repeated_password_attempts_are_throttled(client, make_user, monkeypatch):
    from noteboard.core import config as core_config

    monkeypatch.setenv("RATE_LIMIT_ATTEMPTS", "2")
    core_config.get_settings.cache_clear()
    user = make_user()
    _login(client, user)
    attempt = {"id": str(user.id), "current": "wrong-pass-1", "password": "brand-new-1", "confirm": "brand-new-1"}

    assert _post(client, "/profile/password", attempt).status_code == 200
    assert _post(client, "/profile/password", attempt).status_code == 200
    blocked = _post(client, "/profile/password", attempt)

    assert blocked.status_code == 429
    assert int(blocked.headers["retry-after"]) >= 1
    # other scopes keep their own budget
    assert _post(client, "/profile/mfa/delete", {"id": str(user.id), "password": "000000"}).status_code == 200
