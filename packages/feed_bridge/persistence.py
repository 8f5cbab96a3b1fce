# ruff: noqa: I001
"""SQLAlchemy-backed merchant and transaction stores.

Stores write to the shared database owned by ``libs/db``. They rely on ORM
models defined in ``db.models.ledger`` and open one ``session_scope`` per
operation from the session factory they were constructed with.

Scope:
- Lookup/create merchants by normalized key (unique constraint enforced by the DB).
- Upsert transaction batches on ``external_id`` in a single transaction.
- Read-side queries (by external id, by category, per-category summary).

Every row leaving this module is decoded into a strict pydantic model; a row
that fails validation raises :class:`StoreDecodeError` instead of producing a
partially populated object.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from db.client import session_scope
from db.models.ledger import FbMerchant, FbTransaction
from .exceptions import (
    DuplicateMerchantError,
    MerchantResolutionError,
    PersistenceError,
    StoreDecodeError,
)
from .logging_setup import get_logger
from .models import CandidateRecord, CategorySummary, Merchant, StoredTransaction

_logger = get_logger("feed_bridge.persistence")

# Keeps multi-row INSERT parameter counts well under SQLite/Postgres limits.
_UPSERT_CHUNK_SIZE = 500


def _decode_merchant(row: Any) -> Merchant:
    try:
        return Merchant.model_validate(row, from_attributes=True)
    except ValidationError as exc:
        raise StoreDecodeError(f"malformed merchant row: {exc}") from exc


def _decode_transaction(row: Any) -> StoredTransaction:
    try:
        return StoredTransaction.model_validate(row, from_attributes=True)
    except ValidationError as exc:
        raise StoreDecodeError(f"malformed transaction row: {exc}") from exc


def _chunks(items: Sequence[Any], size: int) -> list[Sequence[Any]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


# ---------------------------------------------------------------------------
# Merchants
# ---------------------------------------------------------------------------


class SqlMerchantStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def find_by_normalized_key(self, normalized_key: str) -> Merchant | None:
        try:
            with session_scope(session_factory=self._session_factory) as session:
                row = (
                    session.execute(
                        select(FbMerchant).where(FbMerchant.normalized_key == normalized_key)
                    )
                    .scalars()
                    .first()
                )
        except SQLAlchemyError as exc:
            raise MerchantResolutionError(f"merchant lookup failed: {exc}") from exc
        return _decode_merchant(row) if row is not None else None

    def create(self, *, display_name: str, normalized_key: str) -> Merchant:
        row = FbMerchant(display_name=display_name, normalized_key=normalized_key)
        try:
            with session_scope(session_factory=self._session_factory) as session:
                session.add(row)
                session.flush()  # obtain id and server defaults
        except IntegrityError as exc:
            # session_scope already rolled back; only the unique key can conflict here
            raise DuplicateMerchantError(normalized_key) from exc
        except SQLAlchemyError as exc:
            raise MerchantResolutionError(f"merchant insert failed: {exc}") from exc
        return _decode_merchant(row)

    def list_merchants(self) -> list[Merchant]:
        try:
            with session_scope(session_factory=self._session_factory) as session:
                rows = (
                    session.execute(select(FbMerchant).order_by(FbMerchant.display_name))
                    .scalars()
                    .all()
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"merchant listing failed: {exc}") from exc
        return [_decode_merchant(r) for r in rows]


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def _insert_for(session: Session):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise PersistenceError(f"batch upsert is not supported on the {dialect!r} dialect")


def _payload(record: CandidateRecord) -> dict[str, Any]:
    return {
        "external_id": record.external_id,
        "description": record.description,
        "raw_description": record.raw_description,
        "amount": record.amount,
        "currency": record.currency,
        "date": record.date,
        "category": record.category,
        "merchant_id": record.merchant_id,
    }


class SqlTransactionStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def upsert_many(self, records: Sequence[CandidateRecord]) -> list[StoredTransaction]:
        """Insert or update ``records`` in one transaction and return the stored rows.

        Idempotency rules:
        - Conflicts on ``external_id`` update every mutable column and
          ``updated_at``; ``created_at`` keeps the first insert time.
        - Duplicate external ids within ``records`` collapse last-write-wins;
          the returned list still holds one row per input record, in input
          order, each showing the final stored state.
        """

        by_eid: dict[str, dict[str, Any]] = {}
        for record in records:
            by_eid[record.external_id] = _payload(record)
        if not by_eid:
            return []
        eids = list(by_eid)

        try:
            with session_scope(session_factory=self._session_factory) as session:
                insert = _insert_for(session)
                for chunk in _chunks(eids, _UPSERT_CHUNK_SIZE):
                    stmt = insert(FbTransaction).values([by_eid[e] for e in chunk])
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[FbTransaction.external_id],
                        set_={
                            "description": stmt.excluded.description,
                            "raw_description": stmt.excluded.raw_description,
                            "amount": stmt.excluded.amount,
                            "currency": stmt.excluded.currency,
                            "date": stmt.excluded.date,
                            "category": stmt.excluded.category,
                            "merchant_id": stmt.excluded.merchant_id,
                            "updated_at": func.now(),
                        },
                    )
                    session.execute(stmt)

                stored: dict[str, StoredTransaction] = {}
                for chunk in _chunks(eids, _UPSERT_CHUNK_SIZE):
                    rows = (
                        session.execute(
                            select(FbTransaction).where(FbTransaction.external_id.in_(chunk))
                        )
                        .scalars()
                        .all()
                    )
                    for row in rows:
                        stored[row.external_id] = _decode_transaction(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to persist transactions: {exc}") from exc

        missing = [e for e in eids if e not in stored]
        if missing:
            raise PersistenceError(f"upserted rows not found on read-back: {missing[:5]}")
        _logger.debug("upserted %d transactions", len(eids))
        return [stored[r.external_id] for r in records]

    def get_by_external_id(self, external_id: str) -> StoredTransaction | None:
        try:
            with session_scope(session_factory=self._session_factory) as session:
                row = (
                    session.execute(
                        select(FbTransaction).where(FbTransaction.external_id == external_id)
                    )
                    .scalars()
                    .first()
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"transaction lookup failed: {exc}") from exc
        return _decode_transaction(row) if row is not None else None

    def list_transactions(self, *, category: str | None = None) -> list[StoredTransaction]:
        stmt = select(FbTransaction).order_by(FbTransaction.date.desc(), FbTransaction.id.desc())
        if category is not None:
            stmt = stmt.where(FbTransaction.category == category)
        try:
            with session_scope(session_factory=self._session_factory) as session:
                rows = session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"transaction listing failed: {exc}") from exc
        return [_decode_transaction(r) for r in rows]

    def category_summary(self, *, fallback_category: str) -> list[CategorySummary]:
        label = func.coalesce(FbTransaction.category, fallback_category)
        stmt = (
            select(
                label.label("category"),
                func.count(FbTransaction.id),
                func.coalesce(func.sum(FbTransaction.amount), 0),
            )
            .group_by(label)
            .order_by(label)
        )
        try:
            with session_scope(session_factory=self._session_factory) as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"category summary failed: {exc}") from exc

        return [
            CategorySummary(
                category=str(category),
                count=int(count),
                total_amount=Decimal(str(total)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
            )
            for category, count, total in rows
        ]


__all__ = ["SqlMerchantStore", "SqlTransactionStore"]
