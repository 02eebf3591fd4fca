from __future__ import annotations

from datetime import datetime, timedelta, timezone

from noteboard.services.session_service import delete_session, issue_session, validate_session_token


def test_issued_session_resolves_to_current_user(make_user):
    user = make_user("ana@example.com", role="admin", name="Ana")
    token = issue_session(user.id)

    result = validate_session_token(token)

    assert result.session.token == token
    assert result.user.id == user.id
    assert result.user.email == "ana@example.com"
    assert result.user.role == "admin"
    assert result.user.mfa is False


def test_unknown_or_missing_tokens(db_env):
    assert validate_session_token(None).user is None
    assert validate_session_token("").session is None
    assert validate_session_token("does-not-exist").user is None


def test_expired_session_is_deleted(repo, make_user):
    user = make_user()
    token = repo.create_session(user.id, datetime.now(timezone.utc) - timedelta(seconds=5))

    assert validate_session_token(token).user is None
    assert repo.find_session(token) is None


def test_session_close_to_expiry_is_extended(repo, make_user):
    user = make_user()
    soon = datetime.now(timezone.utc) + timedelta(minutes=5)
    token = repo.create_session(user.id, soon)

    result = validate_session_token(token)

    assert result.user.id == user.id
    stored = repo.find_session(token).expires_at
    if stored.tzinfo is None:
        stored = stored.replace(tzinfo=timezone.utc)
    assert stored > soon + timedelta(days=1)


def test_revalidation_reads_fresh_identity(repo, make_user):
    user = make_user("old@example.com")
    token = issue_session(user.id)
    repo.update_profile(user.id, "New Name", "new@example.com")

    result = validate_session_token(token)

    assert result.user.email == "new@example.com"
    assert result.user.name == "New Name"


def test_delete_session(make_user):
    user = make_user()
    token = issue_session(user.id)
    delete_session(token)
    delete_session(None)
    assert validate_session_token(token).user is None


def test_expiry_respects_timezone_offset(repo, make_user):
    user = make_user()
    brt = timezone(timedelta(hours=-3))
    token = repo.create_session(user.id, datetime.now(brt) + timedelta(days=20))

    assert validate_session_token(token).user.id == user.id
