"""Store contracts consumed by the resolver, pipeline and read side.

The pipeline depends only on these protocols; ``feed_bridge.persistence``
provides the SQLAlchemy implementations and tests inject in-memory doubles.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from .models import CandidateRecord, CategorySummary, Merchant, StoredTransaction


class MerchantStore(Protocol):
    def find_by_normalized_key(self, normalized_key: str) -> Merchant | None: ...

    def create(self, *, display_name: str, normalized_key: str) -> Merchant:
        """Insert a merchant; raise ``DuplicateMerchantError`` if the key exists."""
        ...

    def list_merchants(self) -> list[Merchant]: ...


class TransactionStore(Protocol):
    def upsert_many(self, records: Sequence[CandidateRecord]) -> list[StoredTransaction]:
        """Atomically upsert ``records`` by external id; one stored row per record.

        Either every record is committed or none is; failures raise
        ``PersistenceError``.
        """
        ...

    def get_by_external_id(self, external_id: str) -> StoredTransaction | None: ...

    def list_transactions(self, *, category: str | None = None) -> list[StoredTransaction]: ...

    def category_summary(self, *, fallback_category: str) -> list[CategorySummary]: ...


__all__ = ["MerchantStore", "TransactionStore"]
