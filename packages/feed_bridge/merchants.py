"""Merchant name normalization and lookup-then-create resolution."""

from __future__ import annotations

import re

from .exceptions import DuplicateMerchantError, FeedBridgeError, MerchantResolutionError
from .logging_setup import get_logger
from .models import Merchant
from .stores import MerchantStore

_logger = get_logger("feed_bridge.merchants")

_HINT_SPLIT_RE = re.compile(r"[\s*#]+")
_PUNCTUATION_RE = re.compile(r"[*#@!$%^&()_+=\[\]{}|\\:\";'<>?,./]")
_WHITESPACE_RE = re.compile(r"\s+")


def merchant_hint_from_description(description: str) -> str:
    """Return the first whitespace/``*``/``#`` delimited token of a description.

    ``"PAYPAL *EBAY" -> "PAYPAL"``. Falls back to the whole description when
    it starts with a delimiter.
    """

    first = _HINT_SPLIT_RE.split(description, maxsplit=1)[0]
    return first or description


def normalize_merchant_name(name: str) -> str:
    """Return the canonical merchant key: first token after punctuation cleanup.

    ``"STARBUCKS Store 2291" -> "STARBUCKS"``; may return ``""``.
    """

    cleaned = _WHITESPACE_RE.sub(" ", _PUNCTUATION_RE.sub(" ", name.upper())).strip()
    return cleaned.split(" ", 1)[0]


class MerchantResolver:
    """Resolve a merchant hint to a persisted :class:`Merchant`, creating it if absent.

    Idempotent by normalized key. A concurrent creation of the same key is
    resolved by re-fetching the row that won the race.
    """

    def __init__(self, store: MerchantStore) -> None:
        self._store = store

    def resolve_or_create(self, raw_hint: str) -> Merchant:
        display_name = raw_hint.strip()
        key = normalize_merchant_name(display_name)
        if not key:
            raise MerchantResolutionError(f"cannot derive a merchant key from {raw_hint!r}")

        try:
            existing = self._store.find_by_normalized_key(key)
            if existing is not None:
                return existing
            try:
                created = self._store.create(display_name=display_name, normalized_key=key)
            except DuplicateMerchantError:
                _logger.info("merchant %s created concurrently; re-fetching", key)
                winner = self._store.find_by_normalized_key(key)
                if winner is None:
                    raise MerchantResolutionError(
                        f"merchant {key!r} conflicted on create but could not be re-fetched"
                    ) from None
                return winner
        except MerchantResolutionError:
            raise
        except FeedBridgeError as exc:
            raise MerchantResolutionError(f"failed to resolve merchant {key!r}: {exc}") from exc

        _logger.debug("created merchant id=%s key=%s", created.id, key)
        return created


__all__ = [
    "MerchantResolver",
    "merchant_hint_from_description",
    "normalize_merchant_name",
]
