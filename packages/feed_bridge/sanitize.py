"""Legacy XML feed decoding and per-field sanitization.

Input shape (element names exact)::

    <transactions>
      <transaction>
        <txn_id>TXN-001</txn_id>
        <description>AMZN Mktp US*123</description>
        <amount>$5.50</amount>
        <currency>usd</currency>
        <date>2023/10/01</date>
      </transaction>
      ...
    </transactions>

Decoding is split from sanitizing so failures land at the right granularity:

- :meth:`XmlTransactionParser.decode` is batch-fatal. A malformed document or
  a root other than ``<transactions>`` raises :class:`ParseError`.
- :meth:`XmlTransactionParser.sanitize` works on one record and raises
  :class:`FieldSanitizationError` for that record only.

Amounts written with a decimal comma (``"120,50"``) are locale-ambiguous and
rejected rather than guessed at.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from dateutil import parser as date_parser

from .exceptions import FieldSanitizationError, ParseError
from .logging_setup import get_logger
from .models import CandidateRecord, RawTransaction

ROOT_TAG = "transactions"
RECORD_TAG = "transaction"
FIELD_TAGS: tuple[str, ...] = ("txn_id", "description", "amount", "currency", "date")

_logger = get_logger("feed_bridge.sanitize")

# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

_CURRENCY_SYMBOLS_RE = re.compile(r"[$€£¥]")
_WHITESPACE_RE = re.compile(r"\s+")
# Optional sign, then either plain digits or digits grouped by thousands commas,
# then an optional fractional part. "120,50" matches neither branch.
_AMOUNT_SHAPE_RE = re.compile(r"^[+-]?(?:\d+|\d{1,3}(?:,\d{3})+)(?:\.\d*)?$|^[+-]?\.\d+$")
_REFERENCE_SUFFIX_RE = re.compile(r"\*\d+")

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_SLASH_DATE_RE = re.compile(r"^(\d{4})/(\d{2})/(\d{2})$")
_VERBOSE_DATE_RE = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2}),?\s+(\d{4})$")

# Differ in year, month and day. A parse that changes with the default was
# missing part of the date.
_FALLBACK_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))

_MONTHS: dict[str, int] = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}  # fmt: skip


def sanitize_amount(raw: str | None) -> Decimal:
    """Parse a dirty amount string into a 2-decimal ``Decimal``.

    Examples: ``"$5.50" -> Decimal("5.50")``, ``"1,200.00" -> Decimal("1200.00")``.
    """

    if raw is None:
        raise FieldSanitizationError("amount", raw, "amount is required")
    s = _WHITESPACE_RE.sub("", _CURRENCY_SYMBOLS_RE.sub("", raw))
    if not _AMOUNT_SHAPE_RE.match(s):
        raise FieldSanitizationError("amount", raw, "invalid amount format")
    try:
        d = Decimal(s.replace(",", ""))
    except InvalidOperation as exc:
        raise FieldSanitizationError("amount", raw, "invalid amount format") from exc
    return d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def sanitize_description(raw: str | None) -> str:
    """Drop ``*<digits>`` reference suffixes, collapse whitespace and trim.

    ``"AMZN Mktp US*123" -> "AMZN Mktp US"``
    """

    if raw is None:
        raise FieldSanitizationError("description", raw, "description is required")
    return _WHITESPACE_RE.sub(" ", _REFERENCE_SUFFIX_RE.sub("", raw)).strip()


def sanitize_currency(raw: str | None) -> str:
    if raw is None:
        raise FieldSanitizationError("currency", raw, "currency is required")
    code = raw.strip().upper()
    if len(code) != 3:
        raise FieldSanitizationError("currency", raw, "currency must be 3 characters")
    return code


def _ymd(year: str, month: str | int, day: str) -> date | None:
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def parse_date(raw: str | None) -> date:
    """Parse a feed date into a calendar date.

    Tried in order: ``YYYY-MM-DD``, ``YYYY/MM/DD``, ``<Month> <Day>[,] <Year>``
    (full or 3-letter month, any case), then a generic date-text parse that
    must supply year, month and day itself.
    """

    if raw is None:
        raise FieldSanitizationError("date", raw, "date is required")
    s = raw.strip()

    m = _ISO_DATE_RE.match(s) or _SLASH_DATE_RE.match(s)
    if m:
        parsed = _ymd(*m.groups())
        if parsed is not None:
            return parsed

    m = _VERBOSE_DATE_RE.match(s)
    if m:
        month = _MONTHS.get(m.group(1).lower())
        if month is not None:
            parsed = _ymd(m.group(3), month, m.group(2))
            if parsed is not None:
                return parsed

    try:
        first, second = (date_parser.parse(s, default=d).date() for d in _FALLBACK_DEFAULTS)
    except (ValueError, OverflowError) as exc:
        raise FieldSanitizationError("date", raw, "invalid date format") from exc
    if first != second:
        raise FieldSanitizationError("date", raw, "incomplete date")
    return first


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class XmlTransactionParser:
    """Decode the legacy XML feed and sanitize its records.

    Usage
    -----
    parser = XmlTransactionParser()
    raws = parser.decode(xml_text)           # may raise ParseError
    record = parser.sanitize(raws[0])        # may raise FieldSanitizationError
    """

    def decode(self, xml_text: str) -> list[RawTransaction]:
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as exc:
            raise ParseError(f"failed to parse XML: {exc}") from exc
        if root.tag != ROOT_TAG:
            raise ParseError(
                f"failed to parse XML: expected root element <{ROOT_TAG}>, got <{root.tag}>"
            )

        raws = [
            RawTransaction(
                position=i,
                txn_id=el.findtext("txn_id"),
                description=el.findtext("description"),
                amount=el.findtext("amount"),
                currency=el.findtext("currency"),
                date=el.findtext("date"),
            )
            for i, el in enumerate(root.findall(RECORD_TAG))
        ]
        _logger.debug("decoded %d transaction elements", len(raws))
        return raws

    def sanitize(self, raw: RawTransaction) -> CandidateRecord:
        missing = [tag for tag in FIELD_TAGS if getattr(raw, tag) is None]
        if missing:
            raise FieldSanitizationError(
                missing[0], None, f"missing required field(s) {', '.join(missing)}"
            )
        assert raw.description is not None  # checked above

        return CandidateRecord(
            external_id=raw.external_id,
            description=sanitize_description(raw.description),
            raw_description=raw.description,
            amount=sanitize_amount(raw.amount),
            currency=sanitize_currency(raw.currency),
            date=parse_date(raw.date),
        )


__all__ = [
    "XmlTransactionParser",
    "parse_date",
    "sanitize_amount",
    "sanitize_currency",
    "sanitize_description",
]
