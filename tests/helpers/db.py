"""DB helpers for tests: bootstrap a temporary SQLite DB from the ORM metadata."""

from __future__ import annotations

import os
from pathlib import Path

from db import Base
from db.client import get_engine, session_scope
from db.models.ledger import FbMerchant, FbTransaction
from sqlalchemy import event, func, select
from sqlalchemy import text as sql_text


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    # Ensure parent exists before engine creation attempts any writes
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)

    # SQLite leaves FK enforcement off unless asked per connection
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):  # pragma: no cover - tiny bridge
        dbapi_conn.execute("PRAGMA foreign_keys = ON")

    Base.metadata.create_all(bind=engine)
    _assert_schema_in_sync(url)

    # Make it the default for any code paths that read from the environment
    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url


def count_rows(database_url: str, model: type[FbMerchant] | type[FbTransaction]) -> int:
    with session_scope(database_url=database_url) as session:
        return int(session.execute(select(func.count()).select_from(model)).scalar_one())


def _assert_schema_in_sync(database_url: str) -> None:
    """Quick sanity check: ORM column sets match the SQLite table column sets."""

    with session_scope(database_url=database_url) as session:
        for model in (FbMerchant, FbTransaction):
            table = model.__tablename__
            expected = {c.name for c in model.__table__.columns}
            rows = session.execute(sql_text(f"PRAGMA table_info('{table}')")).fetchall()
            got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
            assert expected == got, (
                f"{table} schema drift: missing={expected - got or '-'}, "
                f"extra={got - expected or '-'}"
            )
