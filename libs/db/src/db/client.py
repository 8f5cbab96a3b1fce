"""SQLAlchemy engine/session helpers for the workspace.

Usage
-----
from db.client import get_session_factory, session_scope

factory = get_session_factory(database_url=url)
with session_scope(session_factory=factory) as s:
    s.execute(...)

Engines are cached per database URL so several databases (e.g. one SQLite file
per test) can coexist in a process. Long-lived components should receive a
session factory explicitly instead of reaching for the environment.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

_ENGINES: dict[str, Engine] = {}
_SESSION_MAKERS: dict[str, sessionmaker[Session]] = {}
_LOCK = threading.Lock()


def _database_url(override: str | None = None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize database client")
    return url


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the engine for ``database_url``, creating it on first use."""

    url = _database_url(database_url)
    with _LOCK:
        engine = _ENGINES.get(url)
        if engine is None:
            engine = create_engine(url, pool_pre_ping=True)
            _ENGINES[url] = engine
            _SESSION_MAKERS[url] = sessionmaker(
                bind=engine, expire_on_commit=False, class_=Session
            )
        return engine


def get_session_factory(*, database_url: str | None = None) -> sessionmaker[Session]:
    """Return the session factory bound to the engine for ``database_url``."""

    url = _database_url(database_url)
    get_engine(database_url=url)
    return _SESSION_MAKERS[url]


def get_session(*, database_url: str | None = None) -> Session:
    """Return a new SQLAlchemy session bound to the engine for ``database_url``."""

    return get_session_factory(database_url=database_url)()


@contextmanager
def session_scope(
    *,
    session_factory: sessionmaker[Session] | None = None,
    database_url: str | None = None,
) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations.

    Commits when the block exits normally, rolls back and re-raises otherwise.
    """

    if session_factory is not None:
        session = session_factory()
    else:
        session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engines() -> None:
    """Dispose every cached engine (connection pools included)."""

    with _LOCK:
        for engine in _ENGINES.values():
            engine.dispose()
        _ENGINES.clear()
        _SESSION_MAKERS.clear()


__all__ = [
    "dispose_engines",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
]
