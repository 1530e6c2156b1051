"""
Free-text search strategy and autocomplete.

``choose_strategy`` picks exactly one of three modes for a query string:

* phrase      -- the query is wrapped in double quotes; exact phrase search
* all_terms   -- several tokens; every token must match one of SEARCH_FIELDS
* relevance   -- a single token; the store's weighted text relevance
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from ..errors import DirectoryValidationError
from .predicates import AllOf, AnyOf, Contains, Predicate, TextSearch

TEXT_SCORE_FIELD = "text_score"

SEARCH_FIELDS: tuple[str, ...] = ("name", "description", "category", "cuisine_type")

AUTOCOMPLETE_FIELDS: tuple[str, ...] = ("name", "cuisine_type", "category", "city", "neighborhood")


class SearchMode(str, Enum):
    phrase = "phrase"
    all_terms = "all_terms"
    relevance = "relevance"


@dataclass(frozen=True)
class SearchStrategy:
    mode: SearchMode
    query: str
    predicate: Predicate

    @property
    def scores_relevance(self) -> bool:
        """Whether the store annotates matches with a text score."""
        return isinstance(self.predicate, TextSearch)

    def describe(self) -> dict[str, Any]:
        return {"query": self.query, "mode": self.mode.value}


def _is_quoted(text: str) -> bool:
    return len(text) >= 2 and text.startswith('"') and text.endswith('"')


def tokenize(text: str) -> list[str]:
    return [token for token in text.split() if token]


def all_terms_predicate(tokens: Iterable[str], fields: tuple[str, ...] = SEARCH_FIELDS) -> AllOf:
    return AllOf(tuple(AnyOf(tuple(Contains(f, token) for f in fields)) for token in tokens))


def choose_strategy(raw: str | None) -> SearchStrategy | None:
    """Return the search strategy for ``raw``, or ``None`` for a blank query."""
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None

    if _is_quoted(text):
        phrase = " ".join(tokenize(text[1:-1]))
        if not phrase:
            return None
        return SearchStrategy(SearchMode.phrase, phrase, TextSearch(phrase, phrase=True))

    tokens = tokenize(text)
    if len(tokens) > 1:
        return SearchStrategy(SearchMode.all_terms, text, all_terms_predicate(tokens))
    return SearchStrategy(SearchMode.relevance, tokens[0], TextSearch(tokens[0]))


# ---------------------------------------------------------------------------
# Autocomplete
# ---------------------------------------------------------------------------


def autocomplete_query(raw: str | None, min_length: int = 2) -> str:
    text = (raw or "").strip()
    if len(text) < min_length:
        raise DirectoryValidationError.for_field(
            "q", f"Query must be at least {min_length} characters long"
        )
    return text


def autocomplete_predicate(text: str) -> AnyOf:
    return AnyOf(tuple(Contains(f, text) for f in AUTOCOMPLETE_FIELDS))


def _matches(value: Any, needle: str) -> bool:
    return isinstance(value, str) and needle in value.lower()


def tag_match(record: Mapping[str, Any], text: str) -> tuple[str, str] | None:
    """
    Tag a record with the single highest-priority field it matched.

    Priority is name, then cuisine, then location (city before neighborhood),
    then category. Returns ``(bucket, matched_value)`` or ``None``.
    """
    needle = text.lower()
    if _matches(record.get("name"), needle):
        return "restaurants", record["name"]
    if _matches(record.get("cuisine_type"), needle):
        return "cuisines", record["cuisine_type"]
    for field in ("city", "neighborhood"):
        if _matches(record.get(field), needle):
            return "locations", record[field]
    for category in record.get("category") or []:
        if _matches(category, needle):
            return "categories", category
    return None


def group_suggestions(records: Iterable[Mapping[str, Any]], text: str, limit: int) -> dict[str, list[Any]]:
    buckets: dict[str, list[Any]] = {
        "restaurants": [],
        "cuisines": [],
        "locations": [],
        "categories": [],
    }
    seen: dict[str, set[str]] = {name: set() for name in buckets}
    for record in records:
        tagged = tag_match(record, text)
        if tagged is None:
            continue
        bucket, value = tagged
        key = value.lower()
        if key in seen[bucket] or len(buckets[bucket]) >= limit:
            continue
        seen[bucket].add(key)
        if bucket == "restaurants":
            buckets[bucket].append({
                "id": record.get("id"),
                "name": record.get("name"),
                "cuisine_type": record.get("cuisine_type"),
                "city": record.get("city"),
            })
        else:
            buckets[bucket].append(value)
    return buckets
