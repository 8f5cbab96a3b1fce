"""In-memory store doubles for unit tests that should not touch a database."""

from __future__ import annotations

import datetime as dt
from collections.abc import Sequence
from decimal import Decimal

from feed_bridge.exceptions import DuplicateMerchantError
from feed_bridge.models import CandidateRecord, CategorySummary, Merchant, StoredTransaction

_EPOCH = dt.datetime(2024, 1, 1, 12, 0, 0)


class InMemoryMerchantStore:
    """Dict-backed merchant store with call counters and failure switches."""

    def __init__(self) -> None:
        self.by_key: dict[str, Merchant] = {}
        self.create_calls = 0
        self.fail_on_find: Exception | None = None

    def find_by_normalized_key(self, normalized_key: str) -> Merchant | None:
        if self.fail_on_find is not None:
            raise self.fail_on_find
        return self.by_key.get(normalized_key)

    def create(self, *, display_name: str, normalized_key: str) -> Merchant:
        self.create_calls += 1
        if normalized_key in self.by_key:
            raise DuplicateMerchantError(normalized_key)
        merchant = Merchant(
            id=len(self.by_key) + 1, display_name=display_name, normalized_key=normalized_key
        )
        self.by_key[normalized_key] = merchant
        return merchant

    def list_merchants(self) -> list[Merchant]:
        return sorted(self.by_key.values(), key=lambda m: m.display_name)


class RacingMerchantStore(InMemoryMerchantStore):
    """Simulates another writer creating the merchant between lookup and insert."""

    def __init__(self, *, winner_display_name: str = "winner") -> None:
        super().__init__()
        self._winner_display_name = winner_display_name

    def create(self, *, display_name: str, normalized_key: str) -> Merchant:
        super().create(display_name=self._winner_display_name, normalized_key=normalized_key)
        raise DuplicateMerchantError(normalized_key)


class InMemoryTransactionStore:
    """Dict-backed transaction store implementing the upsert contract."""

    def __init__(self) -> None:
        self.rows: dict[str, StoredTransaction] = {}
        self.upsert_calls: list[list[CandidateRecord]] = []
        self.fail_with: Exception | None = None

    def upsert_many(self, records: Sequence[CandidateRecord]) -> list[StoredTransaction]:
        self.upsert_calls.append(list(records))
        if self.fail_with is not None:
            raise self.fail_with

        for r in records:
            existing = self.rows.get(r.external_id)
            row = StoredTransaction(
                id=existing.id if existing else len(self.rows) + 1,
                external_id=r.external_id,
                description=r.description,
                raw_description=r.raw_description,
                amount=r.amount,
                currency=r.currency,
                date=r.date,
                category=r.category,
                merchant_id=r.merchant_id,
                created_at=existing.created_at if existing else _EPOCH,
                updated_at=_EPOCH,
            )
            self.rows[r.external_id] = row
        return [self.rows[r.external_id] for r in records]

    def get_by_external_id(self, external_id: str) -> StoredTransaction | None:
        return self.rows.get(external_id)

    def list_transactions(self, *, category: str | None = None) -> list[StoredTransaction]:
        rows = [r for r in self.rows.values() if category is None or r.category == category]
        return sorted(rows, key=lambda r: (r.date, r.id), reverse=True)

    def category_summary(self, *, fallback_category: str) -> list[CategorySummary]:
        acc: dict[str, list[StoredTransaction]] = {}
        for r in self.rows.values():
            acc.setdefault(r.category or fallback_category, []).append(r)
        return [
            CategorySummary(
                category=label,
                count=len(rows),
                total_amount=sum((r.amount for r in rows), start=Decimal("0.00")),
            )
            for label, rows in sorted(acc.items())
        ]
