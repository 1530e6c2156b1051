"""
Predicate values understood by the restaurant store.

Predicates are immutable descriptions of a matching condition. They carry no
evaluation logic; the store decides how to answer them. ``describe()`` renders
the compiled clause for the ``filters_applied`` section of a response.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any

    def describe(self) -> dict[str, Any]:
        return {self.field: self.value}


@dataclass(frozen=True)
class OneOf:
    """Field value (or, for list fields, any element) is one of ``values``."""

    field: str
    values: tuple[Any, ...]

    def describe(self) -> dict[str, Any]:
        return {self.field: {"in": list(self.values)}}


@dataclass(frozen=True)
class Range:
    field: str
    gte: float | None = None
    lte: float | None = None

    def describe(self) -> dict[str, Any]:
        bounds: dict[str, float] = {}
        if self.gte is not None:
            bounds["gte"] = self.gte
        if self.lte is not None:
            bounds["lte"] = self.lte
        return {self.field: bounds}


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring match. ``text`` is matched literally."""

    field: str
    text: str

    def describe(self) -> dict[str, Any]:
        return {self.field: {"contains": self.text}}


@dataclass(frozen=True)
class IsTrue:
    field: str

    def describe(self) -> dict[str, Any]:
        return {self.field: True}


@dataclass(frozen=True)
class AnyOf:
    clauses: tuple[Predicate, ...]

    def describe(self) -> dict[str, Any]:
        return {"or": [c.describe() for c in self.clauses]}


@dataclass(frozen=True)
class AllOf:
    clauses: tuple[Predicate, ...]

    def describe(self) -> dict[str, Any]:
        return {"and": [c.describe() for c in self.clauses]}


@dataclass(frozen=True)
class TextSearch:
    """Store-native relevance search; ``phrase`` requires the exact phrase."""

    query: str
    phrase: bool = False

    def describe(self) -> dict[str, Any]:
        return {"text": {"search": self.query, "mode": "phrase" if self.phrase else "relevance"}}


@dataclass(frozen=True)
class GeoNear:
    longitude: float
    latitude: float
    max_distance: float

    def describe(self) -> dict[str, Any]:
        return {
            "near": {
                "center": [self.longitude, self.latitude],
                "max_distance_meters": self.max_distance,
            }
        }


Predicate = Union[Equals, OneOf, Range, Contains, IsTrue, AnyOf, AllOf, TextSearch]


def describe_all(predicates: tuple[Predicate, ...]) -> dict[str, Any]:
    """Merge clause descriptions into a single mapping."""
    described: dict[str, Any] = {}
    for predicate in predicates:
        for key, value in predicate.describe().items():
            if key in described and key in ("and", "or"):
                described[key] = described[key] + value
            else:
                described[key] = value
    return described
