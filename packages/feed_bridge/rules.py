"""Keyword rule engine assigning a business category to a description.

Rules are evaluated in descending priority; equal priorities keep their
configuration order (stable sort). The first rule with any keyword contained
in the upper-cased description wins; otherwise the fallback category applies.

Rule sets come from :data:`DEFAULT_CATEGORY_RULES` or from a JSON file shaped
like ``[{"category": ..., "keywords": [...], "priority": 10}, ...]`` (see
:func:`load_rules_from_json`).
"""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

FALLBACK_CATEGORY = "Uncategorized"


@dataclass(frozen=True, slots=True)
class CategoryRule:
    category: str
    keywords: tuple[str, ...]
    priority: int = 0
    description: str | None = None

    def __post_init__(self) -> None:
        if not self.category.strip():
            raise ValueError("CategoryRule.category must be non-empty")
        if not self.keywords or any(not k.strip() for k in self.keywords):
            raise ValueError(
                f"CategoryRule {self.category!r} needs at least one keyword and no blank keywords"
            )

    def matches(self, upper_description: str) -> bool:
        return any(k.upper() in upper_description for k in self.keywords)


DEFAULT_CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        category="eCommerce",
        keywords=("AMZN", "AMAZON", "EBAY", "PAYPAL", "ETSY", "SHOPIFY", "ALIBABA"),
        priority=10,
        description="Online shopping and marketplaces",
    ),
    CategoryRule(
        category="Transport & Food",
        keywords=("STARBUCKS", "UBER", "LYFT", "DOORDASH", "GRUBHUB", "MCDONALD", "SUBWAY"),
        priority=10,
        description="Transportation and food services",
    ),
    CategoryRule(
        category="Entertainment",
        keywords=("NETFLIX", "SPOTIFY", "HULU", "DISNEY", "HBO", "APPLE MUSIC", "YOUTUBE"),
        priority=5,
        description="Streaming and entertainment services",
    ),
    CategoryRule(
        category="Travel",
        keywords=("AIRLINE", "HOTEL", "AIRBNB", "BOOKING", "EXPEDIA", "MARRIOTT", "HILTON"),
        priority=5,
        description="Travel and accommodation",
    ),
    CategoryRule(
        category="Utilities",
        keywords=("ELECTRIC", "GAS", "WATER", "INTERNET", "PHONE", "MOBILE", "COMCAST", "ATT"),
        priority=3,
        description="Utility bills and services",
    ),
)


def _sorted_rules(rules: Iterable[CategoryRule]) -> tuple[CategoryRule, ...]:
    # sorted() is stable, so equal priorities keep configuration order.
    return tuple(sorted(rules, key=lambda r: -r.priority))


class CategoryRuleEngine:
    """Priority-ordered keyword categorizer.

    Instances are shared across concurrent ingestions. Reads use an immutable
    snapshot; :meth:`add_rule` swaps in a new snapshot under a lock.
    """

    def __init__(
        self,
        rules: Sequence[CategoryRule] = DEFAULT_CATEGORY_RULES,
        *,
        fallback_category: str = FALLBACK_CATEGORY,
    ) -> None:
        if not fallback_category.strip():
            raise ValueError("fallback_category must be non-empty")
        self._fallback = fallback_category
        self._lock = threading.Lock()
        self._configured: tuple[CategoryRule, ...] = tuple(rules)
        self._sorted: tuple[CategoryRule, ...] = _sorted_rules(self._configured)

    @property
    def fallback_category(self) -> str:
        return self._fallback

    def categorize(self, description: str) -> str:
        upper = description.upper()
        for rule in self._sorted:
            if rule.matches(upper):
                return rule.category
        return self._fallback

    def categorize_many(self, descriptions: Iterable[str]) -> list[str]:
        return [self.categorize(d) for d in descriptions]

    def add_rule(self, rule: CategoryRule) -> None:
        with self._lock:
            self._configured = (*self._configured, rule)
            self._sorted = _sorted_rules(self._configured)

    def rules(self) -> tuple[CategoryRule, ...]:
        """Return the effective rules in evaluation order."""
        return self._sorted

    def categories(self) -> list[str]:
        """Return the category vocabulary (configuration order, fallback last)."""
        seen = dict.fromkeys(r.category for r in self._configured)
        seen.pop(self._fallback, None)
        return [*seen, self._fallback]


# ---------------------------------------------------------------------------
# JSON configuration
# ---------------------------------------------------------------------------


class _RuleSpec(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    category: str = Field(min_length=1)
    keywords: list[str] = Field(min_length=1)
    priority: int = 0
    description: str | None = None


_RULE_SPECS = TypeAdapter(list[_RuleSpec])


def load_rules_from_json(path: str | PathLike[str]) -> tuple[CategoryRule, ...]:
    """Load and validate a rule set from a JSON file (order preserved)."""

    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        data = json.load(f)
    specs = _RULE_SPECS.validate_python(data)
    return tuple(
        CategoryRule(
            category=s.category,
            keywords=tuple(s.keywords),
            priority=s.priority,
            description=s.description,
        )
        for s in specs
    )


__all__ = [
    "DEFAULT_CATEGORY_RULES",
    "FALLBACK_CATEGORY",
    "CategoryRule",
    "CategoryRuleEngine",
    "load_rules_from_json",
]
