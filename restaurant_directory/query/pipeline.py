"""
Query pipeline assembly.

The assembler resolves a request once into a ``QueryPlan``:

* ``PlainPlan``          -- predicate find
* ``GeoProximityPlan``   -- nearest-neighbour pre-filter, then the same stages

Stages always run in this order: geo pre-filter, text search, compiled
filters, scoring, sort, pagination window, projection.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .geo import DISTANCE_FIELD
from .predicates import GeoNear, Predicate, describe_all
from .scoring import SCORE_FIELD, ScoringStage
from .text_search import TEXT_SCORE_FIELD, SearchStrategy

VERSION_FIELD = "_version"
INTERNAL_FIELDS: tuple[str, ...] = (VERSION_FIELD,)

SORTABLE_FIELDS: frozenset[str] = frozenset({
    "name",
    "rating",
    "avg_cost_per_person",
    "price_level",
    "total_reviews",
    "created_at",
    "updated_at",
    "city",
    "cuisine_type",
})

SORT_ALIASES: dict[str, str] = {
    "price": "avg_cost_per_person",
    "cost": "avg_cost_per_person",
    "reviews": "total_reviews",
    "popularity": "total_reviews",
    "newest": "created_at",
    "relevance": TEXT_SCORE_FIELD,
    "score": SCORE_FIELD,
}


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False

    def describe(self) -> dict[str, str]:
        return {"field": self.field, "order": "desc" if self.descending else "asc"}


NAME_ASC = SortKey("name")


@dataclass(frozen=True)
class Window:
    skip: int
    limit: int


# ── Stages ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MatchStage:
    predicate: Predicate


@dataclass(frozen=True)
class SortStage:
    keys: tuple[SortKey, ...]


@dataclass(frozen=True)
class ProjectStage:
    exclude: tuple[str, ...]


Stage = Union[GeoNear, MatchStage, ScoringStage, SortStage, Window, ProjectStage]


@dataclass(frozen=True)
class QueryDescriptor:
    filters: tuple[Predicate, ...] = ()
    text: SearchStrategy | None = None
    scoring: ScoringStage | None = None
    sort: tuple[SortKey, ...] = (NAME_ASC,)
    window: Window | None = None
    exclude: tuple[str, ...] = INTERNAL_FIELDS

    def match_predicates(self) -> tuple[Predicate, ...]:
        text = (self.text.predicate,) if self.text else ()
        return text + self.filters

    def stages(self) -> tuple[Stage, ...]:
        stages: list[Stage] = [MatchStage(p) for p in self.match_predicates()]
        if self.scoring is not None:
            stages.append(self.scoring)
        stages.append(SortStage(self.sort))
        if self.window is not None:
            stages.append(self.window)
        stages.append(ProjectStage(self.exclude))
        return tuple(stages)

    def filters_applied(self) -> dict[str, Any]:
        return describe_all(self.match_predicates())


@dataclass(frozen=True)
class PlainPlan:
    descriptor: QueryDescriptor

    def stages(self) -> tuple[Stage, ...]:
        return self.descriptor.stages()

    def count_stages(self) -> tuple[Stage, ...]:
        return tuple(MatchStage(p) for p in self.descriptor.match_predicates())

    def filters_applied(self) -> dict[str, Any]:
        return self.descriptor.filters_applied()


@dataclass(frozen=True)
class GeoProximityPlan:
    descriptor: QueryDescriptor
    geo: GeoNear

    def stages(self) -> tuple[Stage, ...]:
        return (self.geo,) + self.descriptor.stages()

    def count_stages(self) -> tuple[Stage, ...]:
        return (self.geo,) + tuple(MatchStage(p) for p in self.descriptor.match_predicates())

    def filters_applied(self) -> dict[str, Any]:
        return {**self.geo.describe(), **self.descriptor.filters_applied()}


QueryPlan = Union[PlainPlan, GeoProximityPlan]


def resolve_sort(
    sort_by: str | None,
    sort_order: str | None = None,
    *,
    available: frozenset[str] = frozenset(),
    default: SortKey = NAME_ASC,
) -> tuple[SortKey, ...]:
    """
    Resolve the requested sort into keys, with ``name`` as secondary key.

    ``sort_order=desc`` sorts descending and any other value ascending. With no
    ``sort_by`` an explicit ``sort_order`` applies to ``default``; without one
    ``default`` keeps its own direction.

    ``available`` holds the computed fields this query produces (distance,
    text score, recommendation score). Requesting one that is not available
    falls back to ``default``; an unknown field falls back to name ascending.
    """
    requested = (sort_by or "").strip().lower()
    descending = (sort_order or "").strip().lower() == "desc"
    if not requested:
        primary = SortKey(default.field, descending) if sort_order else default
    else:
        field = SORT_ALIASES.get(requested, requested)
        if field in (DISTANCE_FIELD, TEXT_SCORE_FIELD, SCORE_FIELD) and field not in available:
            primary = default
        elif field in SORTABLE_FIELDS or field in available:
            primary = SortKey(field, descending)
        else:
            primary = NAME_ASC

    if primary.field == "name":
        return (primary,)
    return (primary, NAME_ASC)


def assemble(
    filters: tuple[Predicate, ...] = (),
    *,
    text: SearchStrategy | None = None,
    geo: GeoNear | None = None,
    scoring: ScoringStage | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    default_sort: SortKey = NAME_ASC,
    page: int | None = None,
    limit: int | None = None,
) -> QueryPlan:
    available: set[str] = set()
    if geo is not None:
        available.add(DISTANCE_FIELD)
    if text is not None and text.scores_relevance:
        available.add(TEXT_SCORE_FIELD)
    if scoring is not None:
        available.add(scoring.field)
    if default_sort.field not in available and default_sort.field not in SORTABLE_FIELDS:
        default_sort = NAME_ASC

    window = None
    if limit is not None:
        window = Window(skip=((page or 1) - 1) * limit, limit=limit)

    descriptor = QueryDescriptor(
        filters=filters,
        text=text,
        scoring=scoring,
        sort=resolve_sort(sort_by, sort_order, available=frozenset(available), default=default_sort),
        window=window,
    )
    if geo is not None:
        return GeoProximityPlan(descriptor, geo)
    return PlainPlan(descriptor)
