"""Data models for the ingestion pipeline.

Two families live here:

- Plain frozen dataclasses for values produced inside one ingestion call
  (``RawTransaction``, ``CandidateRecord``, ``IngestionResult``). They are
  ephemeral and never leave the process except via ``to_dict()``.
- Strict pydantic models for values decoded at the store boundary
  (``Merchant``, ``StoredTransaction``, ``CategorySummary``). Rows are decoded
  with ``model_validate(row, from_attributes=True)`` and fail closed on
  missing or malformed fields.
"""

from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Parser output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawTransaction:
    """Field texts of one ``<transaction>`` element, exactly as decoded.

    A field is ``None`` when its element is absent from the block; present but
    empty elements decode to ``""``.
    """

    position: int
    txn_id: str | None
    description: str | None
    amount: str | None
    currency: str | None
    date: str | None

    @property
    def external_id(self) -> str:
        return (self.txn_id or "").strip()


@dataclass(frozen=True, slots=True)
class CandidateRecord:
    """A sanitized record awaiting categorization, merchant resolution and persistence.

    ``category`` and ``merchant_id`` start unset and are filled in by the
    pipeline via :func:`dataclasses.replace`.
    """

    external_id: str
    description: str
    raw_description: str
    amount: Decimal
    currency: str
    date: dt.date
    category: str | None = None
    merchant_id: int | None = None


# ---------------------------------------------------------------------------
# Store-boundary models
# ---------------------------------------------------------------------------


class Merchant(BaseModel):
    """A durable merchant identity, one per distinct normalized key."""

    model_config = ConfigDict(strict=True, frozen=True, from_attributes=True)

    id: int
    display_name: str
    normalized_key: str

    @field_validator("display_name", "normalized_key")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must be non-empty")
        return v


class StoredTransaction(BaseModel):
    """A persisted transaction as read back from the transaction store."""

    model_config = ConfigDict(strict=True, frozen=True, from_attributes=True)

    id: int
    external_id: str
    description: str
    raw_description: str | None
    amount: Decimal
    currency: str
    date: dt.date
    category: str | None
    merchant_id: int | None
    created_at: dt.datetime
    updated_at: dt.datetime

    @field_validator("currency")
    @classmethod
    def _three_letters(cls, v: str) -> str:
        if len(v) != 3:
            raise ValueError("currency must be exactly 3 characters")
        return v

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "description": self.description,
            "raw_description": self.raw_description,
            "amount": f"{self.amount:.2f}",
            "currency": self.currency,
            "date": self.date.isoformat(),
            "category": self.category,
            "merchant_id": self.merchant_id,
        }


class CategorySummary(BaseModel):
    """Count and amount total of persisted transactions for one category."""

    model_config = ConfigDict(strict=True, frozen=True)

    category: str
    count: int
    total_amount: Decimal


# ---------------------------------------------------------------------------
# Pipeline result
# ---------------------------------------------------------------------------


class IngestionState(enum.StrEnum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class IngestionResult:
    """Terminal output of one ingestion call.

    ``success`` is true only when no record-level errors occurred. Callers tell
    "nothing happened" (``state == FAILED``) from partial success by comparing
    ``total_saved`` with ``total_processed`` and inspecting ``errors``.
    """

    state: IngestionState
    success: bool
    total_processed: int
    total_saved: int
    errors: tuple[str, ...] = ()
    transactions: tuple[StoredTransaction, ...] = field(default_factory=tuple)

    @classmethod
    def failed(cls, message: str, *, total_processed: int = 0) -> IngestionResult:
        return cls(
            state=IngestionState.FAILED,
            success=False,
            total_processed=total_processed,
            total_saved=0,
            errors=(message,),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "success": self.success,
            "total_processed": self.total_processed,
            "total_saved": self.total_saved,
            "errors": list(self.errors),
            "transactions": [t.to_dict() for t in self.transactions],
        }


__all__ = [
    "CandidateRecord",
    "CategorySummary",
    "IngestionResult",
    "IngestionState",
    "Merchant",
    "RawTransaction",
    "StoredTransaction",
]
