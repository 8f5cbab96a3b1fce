"""Ingestion orchestrator: XML text in, :class:`IngestionResult` out.

One call walks four steps:

1. Parsing: decode the document. A structural failure ends the call in the
   ``failed`` state with zero records processed.
2. Per-record processing: sanitize, categorize and resolve the merchant for
   each decoded record in document order. A failure drops that record and
   appends ``"error processing transaction <external id>: <message>"``.
3. Batch persistence: upsert every surviving record as one atomic unit. A
   failure here ends the call in the ``failed`` state; record-level errors
   collected in step 2 are replaced by the single persistence error.
4. Result assembly: ``success`` is true iff step 2 produced no errors.

``ingest`` never raises.
"""

from __future__ import annotations

import time
from dataclasses import replace

from .exceptions import FeedBridgeError
from .logging_setup import get_logger
from .merchants import MerchantResolver, merchant_hint_from_description
from .models import CandidateRecord, IngestionResult, IngestionState, RawTransaction
from .rules import CategoryRuleEngine
from .sanitize import XmlTransactionParser
from .stores import TransactionStore

_logger = get_logger("feed_bridge.pipeline")


class IngestionPipeline:
    def __init__(
        self,
        *,
        parser: XmlTransactionParser,
        rule_engine: CategoryRuleEngine,
        merchant_resolver: MerchantResolver,
        transaction_store: TransactionStore,
    ) -> None:
        self._parser = parser
        self._rules = rule_engine
        self._resolver = merchant_resolver
        self._store = transaction_store

    def ingest(self, xml_text: str) -> IngestionResult:
        t0 = time.perf_counter()

        # 1. Parsing
        try:
            raws = self._parser.decode(xml_text)
        except FeedBridgeError as exc:
            _logger.error("ingestion failed while parsing: %s", exc)
            return IngestionResult.failed(str(exc))
        except Exception as exc:
            _logger.exception("unexpected error while parsing")
            return IngestionResult.failed(f"failed to parse XML: {exc}")

        # 2. Per-record processing
        survivors: list[CandidateRecord] = []
        errors: list[str] = []
        for raw in raws:
            try:
                survivors.append(self._process(raw))
            except Exception as exc:
                message = f"error processing transaction {raw.external_id}: {exc}"
                _logger.warning(message)
                errors.append(message)

        # 3. Batch persistence
        stored = []
        if survivors:
            try:
                stored = self._store.upsert_many(survivors)
            except FeedBridgeError as exc:
                _logger.error("ingestion failed while persisting: %s", exc)
                return IngestionResult.failed(str(exc), total_processed=len(raws))
            except Exception as exc:
                _logger.exception("ingestion failed while persisting %d records", len(survivors))
                return IngestionResult.failed(
                    f"failed to persist transactions: {exc}", total_processed=len(raws)
                )

        # 4. Result assembly
        result = IngestionResult(
            state=IngestionState.COMPLETED,
            success=not errors,
            total_processed=len(raws),
            total_saved=len(stored),
            errors=tuple(errors),
            transactions=tuple(stored),
        )
        _logger.info(
            "ingestion completed: processed=%d saved=%d errors=%d in %.2fs",
            result.total_processed,
            result.total_saved,
            len(errors),
            time.perf_counter() - t0,
        )
        return result

    def _process(self, raw: RawTransaction) -> CandidateRecord:
        record = self._parser.sanitize(raw)
        category = self._rules.categorize(record.description)
        merchant = self._resolver.resolve_or_create(
            merchant_hint_from_description(record.description)
        )
        return replace(record, category=category, merchant_id=merchant.id)


__all__ = ["IngestionPipeline", "IngestionState"]
