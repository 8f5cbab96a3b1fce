from __future__ import annotations

from decimal import Decimal

import pytest

from feed_bridge.exceptions import PersistenceError
from feed_bridge.merchants import MerchantResolver
from feed_bridge.models import IngestionState
from feed_bridge.pipeline import IngestionPipeline
from feed_bridge.rules import CategoryRuleEngine
from feed_bridge.sanitize import XmlTransactionParser

from tests.helpers.stores import InMemoryMerchantStore, InMemoryTransactionStore


def _record(
    txn_id: str, description: str, amount: str, currency: str = "USD", date: str = "2023-10-01"
) -> str:
    return (
        "<transaction>"
        f"<txn_id>{txn_id}</txn_id><description>{description}</description>"
        f"<amount>{amount}</amount><currency>{currency}</currency><date>{date}</date>"
        "</transaction>"
    )


def _doc(*records: str) -> str:
    return "<transactions>" + "".join(records) + "</transactions>"


@pytest.fixture
def merchant_store() -> InMemoryMerchantStore:
    return InMemoryMerchantStore()


@pytest.fixture
def tx_store() -> InMemoryTransactionStore:
    return InMemoryTransactionStore()


@pytest.fixture
def pipeline(
    merchant_store: InMemoryMerchantStore, tx_store: InMemoryTransactionStore
) -> IngestionPipeline:
    return IngestionPipeline(
        parser=XmlTransactionParser(),
        rule_engine=CategoryRuleEngine(),
        merchant_resolver=MerchantResolver(merchant_store),
        transaction_store=tx_store,
    )


def test_partial_failure_keeps_good_records(
    pipeline: IngestionPipeline, tx_store: InMemoryTransactionStore
) -> None:
    xml_text = _doc(
        _record("T-1", "AMZN Mktp US*123", "$5.50"),
        _record("T-2", "NETFLIX", "€120,50"),
        _record("T-3", "STARBUCKS Store 2291", "1,200.00"),
    )

    result = pipeline.ingest(xml_text)

    assert result.state is IngestionState.COMPLETED
    assert result.total_processed == 3
    assert result.total_saved == 2
    assert result.success is False
    assert len(result.errors) == 1
    assert result.errors[0].startswith("error processing transaction T-2: ")
    assert "€120,50" in result.errors[0]
    assert sorted(tx_store.rows) == ["T-1", "T-3"]


def test_records_are_categorized_and_linked_to_merchants(
    pipeline: IngestionPipeline, merchant_store: InMemoryMerchantStore
) -> None:
    result = pipeline.ingest(
        _doc(
            _record("T-1", "AMZN Mktp US*123", "10"),
            _record("T-2", "AMZN Mktp US*999", "20"),
            _record("T-3", "Corner Bakery #42", "3.333"),
        )
    )

    assert result.success is True
    by_id = {t.external_id: t for t in result.transactions}
    assert by_id["T-1"].category == "eCommerce"
    assert by_id["T-1"].merchant_id == by_id["T-2"].merchant_id
    assert by_id["T-3"].category == "Uncategorized"
    assert by_id["T-3"].amount == Decimal("3.33")
    assert sorted(merchant_store.by_key) == ["AMZN", "CORNER"]


def test_empty_document_is_trivial_success(
    pipeline: IngestionPipeline, tx_store: InMemoryTransactionStore
) -> None:
    result = pipeline.ingest("<transactions></transactions>")

    assert result.state is IngestionState.COMPLETED
    assert result.success is True
    assert (result.total_processed, result.total_saved) == (0, 0)
    assert result.errors == ()
    assert tx_store.upsert_calls == []


def test_structural_failure_fails_whole_call(
    pipeline: IngestionPipeline, tx_store: InMemoryTransactionStore
) -> None:
    result = pipeline.ingest("<transactions><transaction>")

    assert result.state is IngestionState.FAILED
    assert result.success is False
    assert (result.total_processed, result.total_saved) == (0, 0)
    assert len(result.errors) == 1
    assert result.errors[0].startswith("failed to parse XML")
    assert tx_store.upsert_calls == []


def test_all_records_failing_skips_persistence(
    pipeline: IngestionPipeline, tx_store: InMemoryTransactionStore
) -> None:
    xml_text = _doc(_record("T-1", "x", "abc"), _record("T-2", "y", "1", date="someday"))

    result = pipeline.ingest(xml_text)

    assert result.state is IngestionState.COMPLETED
    assert result.success is False
    assert (result.total_processed, result.total_saved) == (2, 0)
    assert len(result.errors) == 2
    assert tx_store.upsert_calls == []


def test_persistence_failure_supersedes_record_errors(
    pipeline: IngestionPipeline, tx_store: InMemoryTransactionStore
) -> None:
    tx_store.fail_with = PersistenceError("failed to persist transactions: disk full")

    result = pipeline.ingest(_doc(_record("T-1", "UBER", "1"), _record("T-2", "UBER", "bad")))

    assert result.state is IngestionState.FAILED
    assert result.success is False
    assert result.total_processed == 2
    assert result.total_saved == 0
    assert result.errors == ("failed to persist transactions: disk full",)
    assert result.transactions == ()


def test_unexpected_store_exception_does_not_escape(
    pipeline: IngestionPipeline, tx_store: InMemoryTransactionStore
) -> None:
    tx_store.fail_with = RuntimeError("boom")

    result = pipeline.ingest(_doc(_record("T-1", "UBER", "1")))

    assert result.state is IngestionState.FAILED
    assert result.errors == ("failed to persist transactions: boom",)


def test_merchant_failure_is_record_level(
    pipeline: IngestionPipeline, tx_store: InMemoryTransactionStore
) -> None:
    # "***" sanitizes to a description with no merchant key
    result = pipeline.ingest(_doc(_record("T-1", "***", "1"), _record("T-2", "UBER", "2")))

    assert result.total_saved == 1
    assert result.errors[0].startswith("error processing transaction T-1: ")
    assert list(tx_store.rows) == ["T-2"]


def test_reingest_updates_in_place(
    pipeline: IngestionPipeline, tx_store: InMemoryTransactionStore
) -> None:
    pipeline.ingest(_doc(_record("T-1", "UBER", "1")))
    result = pipeline.ingest(_doc(_record("T-1", "UBER EATS", "2")))

    assert result.total_saved == 1
    assert len(tx_store.rows) == 1
    assert tx_store.rows["T-1"].amount == Decimal("2.00")


def test_result_to_dict_is_json_ready(pipeline: IngestionPipeline) -> None:
    xml_text = _doc(_record("T-1", "UBER *TRIP", "$5.5", currency="usd"))

    payload = pipeline.ingest(xml_text).to_dict()

    assert payload["state"] == "completed"
    assert payload["success"] is True
    tx = payload["transactions"][0]
    assert tx["amount"] == "5.50"
    assert tx["currency"] == "USD"
    assert tx["date"] == "2023-10-01"


def test_repeated_txn_id_counts_every_record_as_saved(
    pipeline: IngestionPipeline, tx_store: InMemoryTransactionStore
) -> None:
    xml_text = _doc(_record("T-1", "UBER", "1"), _record("T-1", "UBER EATS", "2"))

    result = pipeline.ingest(xml_text)

    assert result.success is True
    assert result.total_processed == result.total_saved == 2
    assert result.errors == ()
    assert len(tx_store.rows) == 1
    assert tx_store.rows["T-1"].amount == Decimal("2.00")
