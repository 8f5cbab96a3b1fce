"""Pytest configuration for test isolation.

Tests never read the developer's ``DATABASE_URL`` or rule file: the relevant
environment variables are cleared for every test, and database-backed tests
get their own file-backed SQLite database under ``tmp_path``. Cached engines
are disposed after each test so SQLite files are released.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import dispose_engines, get_session_factory
from sqlalchemy.orm import Session, sessionmaker

from tests.helpers.db import bootstrap_sqlite_db

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ("DATABASE_URL", "FEED_BRIDGE_RULES_FILE", "FEED_BRIDGE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    yield
    dispose_engines()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "feed_bridge.sqlite3")


@pytest.fixture
def session_factory(db_url: str) -> sessionmaker[Session]:
    return get_session_factory(database_url=db_url)


@pytest.fixture
def sample_xml() -> str:
    return (DATA_DIR / "legacy_feed_sample.xml").read_text(encoding="utf-8")
