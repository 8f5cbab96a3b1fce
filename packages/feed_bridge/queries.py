"""Read-side queries over persisted transactions.

These back the list/summary/vocabulary views that a caller layer exposes next
to ingestion. They share the rule engine with the pipeline so the vocabulary
and the fallback label stay consistent with what ingestion assigns.
"""

from __future__ import annotations

from .models import CategorySummary, StoredTransaction
from .rules import CategoryRuleEngine
from .stores import TransactionStore

# Filter value meaning "no category filter".
ALL_CATEGORIES = "all"


class TransactionQueries:
    def __init__(
        self, *, transaction_store: TransactionStore, rule_engine: CategoryRuleEngine
    ) -> None:
        self._store = transaction_store
        self._rules = rule_engine

    def list_transactions(self, category: str | None = None) -> list[StoredTransaction]:
        """Return persisted transactions, newest first, optionally for one category."""

        if category is None or category.strip().lower() == ALL_CATEGORIES:
            return self._store.list_transactions()
        return self._store.list_transactions(category=category)

    def category_summary(self) -> list[CategorySummary]:
        return self._store.category_summary(fallback_category=self._rules.fallback_category)

    def category_vocabulary(self) -> list[str]:
        return self._rules.categories()


__all__ = ["ALL_CATEGORIES", "TransactionQueries"]
