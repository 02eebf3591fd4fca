from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make the noteboard package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from noteboard.core import config as core_config  # noqa: E402
from noteboard.core.security import hash_password  # noqa: E402
from noteboard.db import init_db, models  # noqa: E402
from noteboard.db import session as db_session  # noqa: E402
from noteboard.repositories.account_repository import AccountRepository  # noqa: E402

DEFAULT_PASSWORD = "correct-horse-1"


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Point DATABASE_URL at a temporary SQLite file and reset settings/engine caches."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    init_db()

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def repo(db_env) -> AccountRepository:
    return AccountRepository()


@pytest.fixture()
def make_user(repo):
    counter = {"n": 0}

    def _make(email: str | None = None, *, password: str = DEFAULT_PASSWORD, password_hash: str | None = None, role: str = "user", name: str | None = "Test User"):
        counter["n"] += 1
        address = email or f"user{counter['n']}@example.com"
        stored = password_hash if password_hash is not None else hash_password(password)
        return repo.create_user(address, stored, name=name, role=role)

    return _make
