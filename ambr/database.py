"""
Database setup using SQLAlchemy.

We provide:
- `make_engine()` to build an Engine for a DATABASE_URL
- `make_session_factory()` for per-unit-of-work sessions
- a Base class to declare ORM models

Nothing here is created at import time: the engine is built once at startup
and handed to the EventStore, which owns it.
"""

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Base class for all ORM models
Base = declarative_base()


def _is_memory_sqlite(url) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def make_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Build the Engine for `database_url`.

    SQLite gets special handling because the recorder thread and the UI share
    the same engine:
    - `check_same_thread=False` so pooled connections can cross threads
    - file databases: parent directory is created and WAL journaling enabled
    - in-memory databases: a StaticPool so every session sees the same data
    """
    url = make_url(database_url)
    kwargs = {"future": True, "echo": echo}

    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(url):
            kwargs["poolclass"] = StaticPool
        else:
            Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, **kwargs)

    if url.get_backend_name() == "sqlite" and not _is_memory_sqlite(url):
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    """Session factory: each "unit of work" gets its own session."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        future=True,
    )
