"""Public wiring for the ``feed_bridge`` package.

Components are built once per process by :func:`build_services` and handed to
callers explicitly; nothing here is a module-level singleton. Hosts that embed
the pipeline (an HTTP layer, a worker, the CLI) keep the returned
:class:`Services` for their lifetime.
"""

from __future__ import annotations

from dataclasses import dataclass
from os import PathLike

from db.client import get_session_factory

from .logging_setup import get_logger
from .merchants import MerchantResolver
from .models import IngestionResult
from .persistence import SqlMerchantStore, SqlTransactionStore
from .pipeline import IngestionPipeline
from .queries import TransactionQueries
from .rules import DEFAULT_CATEGORY_RULES, CategoryRuleEngine, load_rules_from_json
from .sanitize import XmlTransactionParser

_logger = get_logger("feed_bridge.api")


@dataclass(frozen=True, slots=True)
class Services:
    rule_engine: CategoryRuleEngine
    merchant_store: SqlMerchantStore
    transaction_store: SqlTransactionStore
    pipeline: IngestionPipeline
    queries: TransactionQueries

    def ingest(self, xml_text: str) -> IngestionResult:
        return self.pipeline.ingest(xml_text)


def build_services(
    *,
    database_url: str | None = None,
    rules_file: str | PathLike[str] | None = None,
) -> Services:
    """Construct the rule engine, stores, pipeline and queries for one database.

    ``database_url`` falls back to ``$DATABASE_URL``. ``rules_file`` is a JSON
    rule set (see :func:`feed_bridge.rules.load_rules_from_json`); the built-in
    defaults apply when it is ``None``.
    """

    if rules_file is not None:
        rules = load_rules_from_json(rules_file)
        _logger.info("loaded %d category rules from %s", len(rules), rules_file)
    else:
        rules = DEFAULT_CATEGORY_RULES
    rule_engine = CategoryRuleEngine(rules)

    session_factory = get_session_factory(database_url=database_url)
    merchant_store = SqlMerchantStore(session_factory)
    transaction_store = SqlTransactionStore(session_factory)

    pipeline = IngestionPipeline(
        parser=XmlTransactionParser(),
        rule_engine=rule_engine,
        merchant_resolver=MerchantResolver(merchant_store),
        transaction_store=transaction_store,
    )
    queries = TransactionQueries(transaction_store=transaction_store, rule_engine=rule_engine)
    return Services(
        rule_engine=rule_engine,
        merchant_store=merchant_store,
        transaction_store=transaction_store,
        pipeline=pipeline,
        queries=queries,
    )


__all__ = ["Services", "build_services"]
