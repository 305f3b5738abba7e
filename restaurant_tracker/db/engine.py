"""
Engine and sessions for the restaurant store.

The store is a SQLite file by default. DATABASE_URL may name another file
or carry a full SQLAlchemy URL; the engine and session factory are built
once per process and rebuilt after `reset_engine()`.
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

DEFAULT_DB_PATH = Path.home() / ".restaurant_tracker" / "restaurants.db"


def get_database_url(db_path: Path | str | None = None) -> str:
    """
    Resolve the store's connection URL.

    An explicit `db_path` wins, then DATABASE_URL (a file path or a full
    URL), then DEFAULT_DB_PATH. The parent directory of a SQLite file is
    created on demand.
    """
    if db_path is not None:
        path = Path(db_path)
    elif os.environ.get("DATABASE_URL"):
        url = os.environ["DATABASE_URL"]
        if "://" in url:
            return url
        path = Path(url)
    else:
        path = DEFAULT_DB_PATH

    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{path}"


def create_db_engine(db_path: Path | str | None = None, echo: bool = False) -> Engine:
    """Build an engine for the store; `echo` logs every SQL statement."""
    url = get_database_url(db_path)
    # API handlers and crawls share the engine across threads
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=echo, connect_args=connect_args)


_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def get_engine(db_path: Path | str | None = None, echo: bool = False) -> Engine:
    """Process-wide engine, created on first use."""
    global _engine
    if _engine is None:
        _engine = create_db_engine(db_path, echo)
    return _engine


def get_session_factory(db_path: Path | str | None = None) -> sessionmaker[Session]:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine(db_path))
    return _SessionLocal


def reset_engine() -> None:
    """Dispose of the engine so the next session picks up a new DATABASE_URL."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


@contextmanager
def get_session(db_path: Path | str | None = None) -> Generator[Session, None, None]:
    """
    Open a session on the restaurant store.

    The session is closed on exit but never committed; repositories flush
    and the crawl, sample loader and callers commit their own work.
    """
    session = get_session_factory(db_path)()
    try:
        yield session
    finally:
        session.close()


def init_db(db_path: Path | str | None = None) -> None:
    """Create the `restaurants` and `system` tables if they are missing."""
    from restaurant_tracker.db.models import Base

    Base.metadata.create_all(bind=get_engine(db_path))
