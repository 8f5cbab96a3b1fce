"""Exception taxonomy for the ingestion pipeline.

Batch-fatal errors (``ParseError``, ``PersistenceError``) abort a whole
ingestion call. Record-level errors (``FieldSanitizationError``,
``MerchantResolutionError``) drop a single record and are reported in the
result's error list.
"""

from __future__ import annotations


class FeedBridgeError(Exception):
    """Base class for all errors raised by ``feed_bridge``."""


class ParseError(FeedBridgeError):
    """The input document is not well-formed or lacks the expected structure."""


class FieldSanitizationError(FeedBridgeError, ValueError):
    """A single field of a single record could not be sanitized."""

    def __init__(self, field: str, raw_value: str | None, reason: str | None = None) -> None:
        self.field = field
        self.raw_value = raw_value
        message = reason or f"invalid {field}"
        super().__init__(message if raw_value is None else f"{message}: {raw_value!r}")


class MerchantResolutionError(FeedBridgeError):
    """A merchant could not be found or created for a record."""


class DuplicateMerchantError(FeedBridgeError):
    """A merchant with the same normalized key already exists (uniqueness race)."""

    def __init__(self, normalized_key: str) -> None:
        self.normalized_key = normalized_key
        super().__init__(f"merchant already exists for normalized key {normalized_key!r}")


class PersistenceError(FeedBridgeError):
    """The transaction store failed to commit or read back a batch."""


class StoreDecodeError(FeedBridgeError):
    """A row read from a store is missing fields or holds malformed values."""


__all__ = [
    "DuplicateMerchantError",
    "FeedBridgeError",
    "FieldSanitizationError",
    "MerchantResolutionError",
    "ParseError",
    "PersistenceError",
    "StoreDecodeError",
]
