"""Public interface for the ``feed_bridge`` package.

This module exposes the wiring entry point, the pipeline components and the
public models as the stable import surface. There is no runtime logic here,
only symbol re-exports.
"""

from .api import Services, build_services
from .exceptions import (
    DuplicateMerchantError,
    FeedBridgeError,
    FieldSanitizationError,
    MerchantResolutionError,
    ParseError,
    PersistenceError,
    StoreDecodeError,
)
from .merchants import MerchantResolver, merchant_hint_from_description, normalize_merchant_name
from .models import (
    CandidateRecord,
    CategorySummary,
    IngestionResult,
    IngestionState,
    Merchant,
    RawTransaction,
    StoredTransaction,
)
from .pipeline import IngestionPipeline
from .queries import TransactionQueries
from .rules import (
    DEFAULT_CATEGORY_RULES,
    FALLBACK_CATEGORY,
    CategoryRule,
    CategoryRuleEngine,
    load_rules_from_json,
)
from .sanitize import XmlTransactionParser

__all__ = [
    # Wiring
    "Services",
    "build_services",
    # Pipeline components
    "CategoryRule",
    "CategoryRuleEngine",
    "DEFAULT_CATEGORY_RULES",
    "FALLBACK_CATEGORY",
    "IngestionPipeline",
    "MerchantResolver",
    "TransactionQueries",
    "XmlTransactionParser",
    "load_rules_from_json",
    "merchant_hint_from_description",
    "normalize_merchant_name",
    # Models
    "CandidateRecord",
    "CategorySummary",
    "IngestionResult",
    "IngestionState",
    "Merchant",
    "RawTransaction",
    "StoredTransaction",
    # Errors
    "DuplicateMerchantError",
    "FeedBridgeError",
    "FieldSanitizationError",
    "MerchantResolutionError",
    "ParseError",
    "PersistenceError",
    "StoreDecodeError",
]
