"""
In-memory restaurant document store backed by a pandas DataFrame.

The store answers query plans built by ``restaurant_directory.query``: it
evaluates predicates to boolean masks, scores text relevance with per-field
TF-IDF, computes great-circle distances and runs grouping aggregations.
"""
from __future__ import annotations

import logging
import math
import re
import threading
from typing import Any, Iterable

import numpy as np
import pandas as pd
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.metrics.pairwise import cosine_similarity, haversine_distances

from ..config import DEFAULT_CONFIG, DirectoryConfig
from ..errors import StoreError
from ..query.geo import DISTANCE_FIELD
from ..query.pipeline import (
    INTERNAL_FIELDS,
    VERSION_FIELD,
    MatchStage,
    ProjectStage,
    QueryPlan,
    SortStage,
    Window,
)
from ..query.predicates import (
    AllOf,
    AnyOf,
    Contains,
    Equals,
    GeoNear,
    IsTrue,
    OneOf,
    Predicate,
    Range,
    TextSearch,
)
from ..query.scoring import ScoringStage
from ..query.text_search import TEXT_SCORE_FIELD
from .ingest import LIST_COLUMNS, load_restaurants, new_id, normalize_frame, utc_now

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6_378_100.0

_TOKEN = re.compile(r"(?u)\b\w\w+\b")

_store: RestaurantStore | None = None
_store_lock = threading.Lock()


def _clean(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return list(value)
    if value is None or value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def to_records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    return [
        {key: _clean(value) for key, value in row.items()}
        for row in frame.to_dict(orient="records")
    ]


def _field_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value)


def fold_plural(token: str) -> str:
    """Drop a trailing plural ``s`` so ``tacos`` and ``taco`` share a term."""
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def index_tokens(text: str) -> list[str]:
    return [fold_plural(token) for token in _TOKEN.findall(text)]


class TextIndex:
    """Field-weighted TF-IDF relevance over one snapshot of the collection."""

    def __init__(self, frame: pd.DataFrame, weights: dict[str, float]):
        self._index = frame.index
        self._fields: list[tuple[float, TfidfVectorizer, Any]] = []
        for field, weight in weights.items():
            if field not in frame.columns:
                continue
            texts = [_field_text(v) for v in frame[field]]
            vectorizer = TfidfVectorizer(
                strip_accents="unicode",
                lowercase=True,
                tokenizer=index_tokens,
                token_pattern=None,
            )
            try:
                matrix = vectorizer.fit_transform(texts)
            except ValueError:
                # empty vocabulary: nothing in this field to score
                continue
            self._fields.append((weight, vectorizer, matrix))

    def scores(self, query: str) -> pd.Series:
        total = np.zeros(len(self._index))
        for weight, vectorizer, matrix in self._fields:
            query_vec = vectorizer.transform([query])
            total += weight * cosine_similarity(query_vec, matrix).flatten()
        return pd.Series(total, index=self._index)


class RestaurantStore:
    def __init__(self, frame: pd.DataFrame | None = None, config: DirectoryConfig = DEFAULT_CONFIG):
        self._config = config
        self._lock = threading.RLock()
        self._frame = frame if frame is not None else normalize_frame(pd.DataFrame())
        self._text_index: TextIndex | None = None

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]], config: DirectoryConfig = DEFAULT_CONFIG) -> RestaurantStore:
        return cls(normalize_frame(pd.DataFrame(list(records))), config)

    @classmethod
    def from_csv(cls, path, config: DirectoryConfig = DEFAULT_CONFIG) -> RestaurantStore:
        return cls(load_restaurants(path), config)

    def __len__(self) -> int:
        return len(self._frame)

    def snapshot(self) -> pd.DataFrame:
        with self._lock:
            return self._frame

    def _read(self) -> tuple[pd.DataFrame, TextIndex]:
        with self._lock:
            if self._text_index is None:
                self._text_index = TextIndex(self._frame, self._config.text_weights)
            return self._frame, self._text_index

    def _replace(self, frame: pd.DataFrame) -> None:
        with self._lock:
            self._frame = frame
            self._text_index = None

    # ── Queries ──────────────────────────────────────────────────────────

    def find(self, plan: QueryPlan) -> list[dict[str, Any]]:
        frame, index = self._read()
        return to_records(self._execute(frame, index, plan.stages()))

    def count(self, plan: QueryPlan) -> int:
        frame, index = self._read()
        return len(self._execute(frame, index, plan.count_stages()))

    def get(self, restaurant_id: str) -> dict[str, Any] | None:
        frame = self.snapshot()
        matches = frame.loc[frame["id"] == restaurant_id]
        if matches.empty:
            return None
        return to_records(matches.drop(columns=list(INTERNAL_FIELDS)))[0]

    def aggregate_stats(self) -> dict[str, Any]:
        frame = self.snapshot()
        try:
            return {
                "general": self._general_stats(frame),
                "by_cuisine": self._group_stats(frame, "cuisine_type", with_rating=True),
                "by_city": self._group_stats(frame, "city"),
            }
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Statistics aggregation failed", exc_info=True)
            raise StoreError(f"Statistics aggregation failed: {exc}") from exc

    # ── Writes ───────────────────────────────────────────────────────────

    def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        now = utc_now()
        record = {
            **document,
            "id": new_id(),
            "created_at": now,
            "updated_at": now,
            VERSION_FIELD: 0,
        }
        with self._lock:
            row = normalize_frame(pd.DataFrame([record]))
            self._replace(pd.concat([self._frame, row], ignore_index=True))
        return self.get(record["id"])

    def update(self, restaurant_id: str, document: dict[str, Any]) -> dict[str, Any] | None:
        """Replace the stored document, keeping identity and creation time."""
        with self._lock:
            frame = self._frame
            positions = np.flatnonzero(frame["id"].to_numpy() == restaurant_id)
            if len(positions) == 0:
                return None
            pos = int(positions[0])
            current = frame.iloc[pos]
            created_at = current["created_at"]
            record = {
                **document,
                "id": restaurant_id,
                "created_at": created_at,
                "updated_at": max(utc_now(), created_at),
                VERSION_FIELD: int(current[VERSION_FIELD]) + 1,
            }
            row = normalize_frame(pd.DataFrame([record]))
            self._replace(pd.concat([frame.iloc[:pos], row, frame.iloc[pos + 1:]], ignore_index=True))
        return self.get(restaurant_id)

    def delete(self, restaurant_id: str) -> dict[str, Any] | None:
        with self._lock:
            frame = self._frame
            mask = frame["id"] == restaurant_id
            if not mask.any():
                return None
            removed = to_records(frame.loc[mask].drop(columns=list(INTERNAL_FIELDS)))[0]
            self._replace(frame.loc[~mask].reset_index(drop=True))
        return removed

    # ── Pipeline execution ───────────────────────────────────────────────

    def _execute(self, frame: pd.DataFrame, index: TextIndex, stages) -> pd.DataFrame:
        try:
            for stage in stages:
                frame = self._apply(frame, index, stage)
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Query execution failed", exc_info=True)
            raise StoreError(f"Query execution failed: {exc}") from exc
        return frame

    def _apply(self, frame: pd.DataFrame, index: TextIndex, stage) -> pd.DataFrame:
        if isinstance(stage, GeoNear):
            return self._geo_near(frame, stage)
        if isinstance(stage, MatchStage):
            if isinstance(stage.predicate, TextSearch):
                return self._text_search(frame, index, stage.predicate)
            return frame.loc[self._mask(frame, stage.predicate)]
        if isinstance(stage, ScoringStage):
            scores = [stage.score(record) for record in frame.to_dict(orient="records")]
            return frame.assign(**{stage.field: pd.Series(scores, index=frame.index, dtype=float)})
        if isinstance(stage, SortStage):
            return self._sort(frame, stage)
        if isinstance(stage, Window):
            return frame.iloc[stage.skip:stage.skip + stage.limit]
        if isinstance(stage, ProjectStage):
            return frame.drop(columns=[c for c in stage.exclude if c in frame.columns])
        raise TypeError(f"Unsupported query stage: {type(stage).__name__}")

    def _mask(self, frame: pd.DataFrame, predicate: Predicate) -> pd.Series:
        if isinstance(predicate, AllOf):
            mask = pd.Series(True, index=frame.index)
            for clause in predicate.clauses:
                mask &= self._mask(frame, clause)
            return mask
        if isinstance(predicate, AnyOf):
            mask = pd.Series(False, index=frame.index)
            for clause in predicate.clauses:
                mask |= self._mask(frame, clause)
            return mask

        if predicate.field not in frame.columns:
            return pd.Series(False, index=frame.index)
        column = frame[predicate.field]
        is_list = predicate.field in LIST_COLUMNS

        if isinstance(predicate, Equals):
            if is_list:
                return column.apply(lambda values: predicate.value in values).astype(bool)
            return column.eq(predicate.value).fillna(False).astype(bool)
        if isinstance(predicate, OneOf):
            wanted = set(predicate.values)
            if is_list:
                return column.apply(lambda values: bool(wanted & set(values))).astype(bool)
            return column.isin(list(wanted)).fillna(False).astype(bool)
        if isinstance(predicate, Range):
            numbers = pd.to_numeric(column, errors="coerce")
            mask = numbers.notna()
            if predicate.gte is not None:
                mask &= numbers >= predicate.gte
            if predicate.lte is not None:
                mask &= numbers <= predicate.lte
            return mask.fillna(False).astype(bool)
        if isinstance(predicate, Contains):
            needle = predicate.text.lower()
            if is_list:
                return column.apply(lambda values: any(needle in v.lower() for v in values)).astype(bool)
            return column.fillna("").astype(str).str.lower().str.contains(needle, regex=False)
        if isinstance(predicate, IsTrue):
            return column.eq(True).fillna(False).astype(bool)
        raise TypeError(f"Unsupported predicate: {type(predicate).__name__}")

    def _text_search(self, frame: pd.DataFrame, index: TextIndex, predicate: TextSearch) -> pd.DataFrame:
        scores = index.scores(predicate.query).reindex(frame.index, fill_value=0.0)
        if predicate.phrase:
            needle = predicate.query.lower()
            mask = pd.Series(False, index=frame.index)
            for field in self._config.text_weights:
                if field in frame.columns:
                    mask |= frame[field].apply(lambda v: needle in _field_text(v).lower()).astype(bool)
        else:
            mask = scores > 0
        return frame.loc[mask].assign(**{TEXT_SCORE_FIELD: scores[mask]})

    def _geo_near(self, frame: pd.DataFrame, geo: GeoNear) -> pd.DataFrame:
        located = frame.loc[frame["longitude"].notna() & frame["latitude"].notna()]
        if located.empty:
            return located.assign(**{DISTANCE_FIELD: pd.Series(dtype=float)})
        points = np.radians(located[["latitude", "longitude"]].to_numpy(dtype=float))
        center = np.radians([[geo.latitude, geo.longitude]])
        distances = haversine_distances(center, points)[0] * EARTH_RADIUS_METERS
        located = located.assign(**{DISTANCE_FIELD: distances})
        nearby = located.loc[located[DISTANCE_FIELD] <= geo.max_distance]
        return nearby.sort_values(DISTANCE_FIELD, kind="mergesort")

    @staticmethod
    def _sort(frame: pd.DataFrame, stage: SortStage) -> pd.DataFrame:
        keys = [k for k in stage.keys if k.field in frame.columns]
        if not keys or frame.empty:
            return frame
        return frame.sort_values(
            by=[k.field for k in keys],
            ascending=[not k.descending for k in keys],
            kind="mergesort",
            na_position="last",
        )

    # ── Aggregation ──────────────────────────────────────────────────────

    @staticmethod
    def _mean(series: pd.Series) -> float | None:
        value = pd.to_numeric(series, errors="coerce").mean()
        return None if pd.isna(value) else round(float(value), 2)

    def _general_stats(self, frame: pd.DataFrame) -> dict[str, Any]:
        if frame.empty:
            return {}
        prices = frame["avg_cost_per_person"]
        return {
            "total_restaurants": int(len(frame)),
            "avg_rating": self._mean(frame["rating"]),
            "avg_price": self._mean(prices),
            "min_price": _clean(prices.min()),
            "max_price": _clean(prices.max()),
        }

    def _group_stats(self, frame: pd.DataFrame, field: str, with_rating: bool = False) -> list[dict[str, Any]]:
        rows = []
        for value, group in frame.groupby(field, dropna=False, sort=True):
            row: dict[str, Any] = {field: _clean(value), "count": int(len(group))}
            if with_rating:
                row["avg_rating"] = self._mean(group["rating"])
            rows.append(row)
        rows.sort(key=lambda r: -r["count"])
        return rows


def get_store() -> RestaurantStore:
    """Return the process-wide store, loading the seed CSV on first call."""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                path = DEFAULT_CONFIG.data_path
                if path.is_file():
                    _store = RestaurantStore.from_csv(path)
                else:
                    logger.warning("Seed data %s not found; starting with an empty store", path)
                    _store = RestaurantStore()
    return _store
