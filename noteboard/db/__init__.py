"""Database package: the declarative base, the session factory and schema setup."""

from .session import Base, get_session


def init_db() -> None:
    """Create every table declared in `noteboard.db.models` on the configured engine."""
    from . import models  # noqa: F401  # registers the tables on Base.metadata
    from .session import get_engine

    Base.metadata.create_all(bind=get_engine())


__all__ = ["Base", "get_session", "init_db"]
