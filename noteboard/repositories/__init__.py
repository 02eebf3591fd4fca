"""
Persistence adapters.

Services depend on these repositories rather than opening SQLAlchemy sessions
themselves, so the workflow can run against any database the engine supports
(SQLite in tests, Postgres in production).
"""
