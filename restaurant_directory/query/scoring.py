"""
Recommendation scoring.

A score is the sum of an ordered tuple of terms. Each term is a pure function
of the candidate record; terms that do not apply to a request are left out of
the tuple entirely rather than contributing zero.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .geo import DISTANCE_FIELD

SCORE_FIELD = "recommendation_score"

CUISINE_MATCH_BONUS = 10.0
BUDGET_FIT_BONUS = 5.0
OVER_BUDGET_PENALTY = -10.0
POPULARITY_CAP = 5.0
PROXIMITY_BASE = 10.0


def _number(record: Mapping[str, Any], field: str) -> float | None:
    value = record.get(field)
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    # NaN from the store means missing
    return None if value != value else value


@dataclass(frozen=True)
class RatingTerm:
    name: str = "rating"

    def __call__(self, record: Mapping[str, Any]) -> float:
        rating = _number(record, "rating")
        return rating * 2 if rating is not None else 0.0


@dataclass(frozen=True)
class CuisineMatchTerm:
    preferred: frozenset[str]
    name: str = "cuisine_match"

    def __call__(self, record: Mapping[str, Any]) -> float:
        return CUISINE_MATCH_BONUS if record.get("cuisine_type") in self.preferred else 0.0


@dataclass(frozen=True)
class BudgetFitTerm:
    # Over-budget records are penalised, not just denied the bonus.
    budget_max: float
    name: str = "budget_fit"

    def __call__(self, record: Mapping[str, Any]) -> float:
        cost = _number(record, "avg_cost_per_person")
        if cost is None or cost <= self.budget_max:
            return BUDGET_FIT_BONUS
        return OVER_BUDGET_PENALTY


@dataclass(frozen=True)
class PopularityTerm:
    name: str = "popularity"

    def __call__(self, record: Mapping[str, Any]) -> float:
        reviews = _number(record, "total_reviews") or 0.0
        return min(reviews / 10, POPULARITY_CAP)


@dataclass(frozen=True)
class ProximityTerm:
    # No floor: far records go negative.
    name: str = "proximity"

    def __call__(self, record: Mapping[str, Any]) -> float:
        distance = _number(record, DISTANCE_FIELD)
        if distance is None:
            return 0.0
        return PROXIMITY_BASE - distance / 1000


@dataclass(frozen=True)
class ScoringStage:
    terms: tuple[Any, ...]
    field: str = SCORE_FIELD

    def score(self, record: Mapping[str, Any]) -> float:
        return float(sum(term(record) for term in self.terms))

    def breakdown(self, record: Mapping[str, Any]) -> dict[str, float]:
        return {term.name: round(term(record), 4) for term in self.terms}

    def describe(self) -> list[str]:
        return [term.name for term in self.terms]


def recommendation_scoring(
    preferred_cuisines: list[str] | None = None,
    budget_max: float | None = None,
    geo_active: bool = False,
) -> ScoringStage:
    terms: list[Any] = [RatingTerm()]
    if preferred_cuisines:
        terms.append(CuisineMatchTerm(frozenset(preferred_cuisines)))
    if budget_max is not None:
        terms.append(BudgetFitTerm(budget_max))
    terms.append(PopularityTerm())
    if geo_active:
        terms.append(ProximityTerm())
    return ScoringStage(tuple(terms))
