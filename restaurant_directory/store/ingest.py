"""
Restaurant data ingestion.

Responsibilities:
- Read a raw CSV export of the restaurant collection.
- Normalize it into the canonical restaurant schema used by the store.
- Write the collection back out as a CSV backup.
"""
from __future__ import annotations

import logging
import math
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List

import pandas as pd

from ..models import AMENITY_FIELDS, WEEKDAYS

logger = logging.getLogger(__name__)

LIST_SEPARATOR = "|"

LIST_COLUMNS: List[str] = ["category", "tags"]
FLOAT_COLUMNS: List[str] = [
    "longitude",
    "latitude",
    "avg_cost_per_person",
    "min_cost",
    "max_cost",
    "rating",
]
INT_COLUMNS: List[str] = ["price_level", "total_reviews", "_version"]
TIMESTAMP_COLUMNS: List[str] = ["created_at", "updated_at"]
TEXT_COLUMNS: List[str] = [
    "name",
    "description",
    "cuisine_type",
    "phone",
    "email",
    "website",
    "facebook",
    "instagram",
    "street",
    "neighborhood",
    "city",
    "state",
    "country",
    "zipcode",
    "full_address",
] + [f"{day}_{edge}" for day in WEEKDAYS for edge in ("open", "close")]

# Only the payment flags accept by default.
BOOL_DEFAULTS: dict[str, bool] = {
    name: name in ("payment_cash", "payment_card") for name in AMENITY_FIELDS
}

CANONICAL_COLUMNS: List[str] = (
    ["id"]
    + TEXT_COLUMNS
    + LIST_COLUMNS
    + FLOAT_COLUMNS
    + INT_COLUMNS
    + list(AMENITY_FIELDS)
    + TIMESTAMP_COLUMNS
)

# canonical column -> alternative names seen in raw exports
_RAW_ALIASES: dict[str, List[str]] = {
    "id": ["id", "_id", "restaurant_id"],
    "cuisine_type": ["cuisine_type", "cuisine"],
    "category": ["category", "categories"],
    "longitude": ["longitude", "lng", "lon"],
    "latitude": ["latitude", "lat"],
    "total_reviews": ["total_reviews", "reviews", "review_count"],
    "_version": ["_version", "__v"],
}

_TRUE_STRINGS = {"true", "1", "yes", "y", "t"}
_FALSE_STRINGS = {"false", "0", "no", "n", "f"}


def new_id() -> str:
    return secrets.token_hex(12)


def utc_now() -> pd.Timestamp:
    return pd.Timestamp(datetime.now(timezone.utc))


def _is_missing(value: Any) -> bool:
    if value is None or value is pd.NA or value is pd.NaT:
        return True
    return isinstance(value, float) and math.isnan(value)


def _to_text(value: Any) -> str | None:
    if _is_missing(value):
        return None
    text = str(value).strip()
    return text or None


def _to_list(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    if _is_missing(value):
        return []
    return [part.strip() for part in str(value).split(LIST_SEPARATOR) if part.strip()]


def _to_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if _is_missing(value):
        return default
    lowered = str(value).strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    return default


def normalize_frame(raw: pd.DataFrame) -> pd.DataFrame:
    """Map a raw frame onto CANONICAL_COLUMNS with the store's dtypes."""

    def _first_present(columns: List[str]) -> str | None:
        for col in columns:
            if col in raw.columns:
                return col
        return None

    canonical = pd.DataFrame(index=raw.index)
    for column in CANONICAL_COLUMNS:
        source = _first_present(_RAW_ALIASES.get(column, [column]))
        canonical[column] = raw[source] if source else None

    canonical["id"] = [_to_text(v) or new_id() for v in canonical["id"]]
    for column in TEXT_COLUMNS:
        canonical[column] = pd.Series(
            [_to_text(v) for v in canonical[column]], index=canonical.index, dtype=object
        )
    for column in LIST_COLUMNS:
        canonical[column] = pd.Series(
            [_to_list(v) for v in canonical[column]], index=canonical.index, dtype=object
        )
    for column in FLOAT_COLUMNS:
        canonical[column] = pd.to_numeric(canonical[column], errors="coerce").astype(float)
    for column in INT_COLUMNS:
        canonical[column] = pd.to_numeric(canonical[column], errors="coerce").round().astype("Int64")
    canonical["total_reviews"] = canonical["total_reviews"].fillna(0)
    canonical["_version"] = canonical["_version"].fillna(0)
    for column, default in BOOL_DEFAULTS.items():
        canonical[column] = [_to_bool(v, default) for v in canonical[column]]
        canonical[column] = canonical[column].astype(bool)

    # Coordinates are only meaningful as a pair within range.
    lon, lat = canonical["longitude"], canonical["latitude"]
    valid_point = lon.between(-180, 180) & lat.between(-90, 90)
    canonical.loc[~valid_point, ["longitude", "latitude"]] = float("nan")

    now = utc_now()
    for column in TIMESTAMP_COLUMNS:
        canonical[column] = pd.to_datetime(canonical[column], utc=True, errors="coerce").fillna(now)
    later = canonical["updated_at"] >= canonical["created_at"]
    canonical["updated_at"] = canonical["updated_at"].where(later, canonical["created_at"])

    return canonical[CANONICAL_COLUMNS].reset_index(drop=True)


def load_restaurants(path: Path) -> pd.DataFrame:
    raw = pd.read_csv(path, dtype=str, keep_default_na=False, na_values=[""])
    frame = normalize_frame(raw)
    logger.info("Loaded %d restaurants from %s", len(frame), path)
    return frame


def export_restaurants(frame: pd.DataFrame, path: Path) -> dict[str, Any]:
    """
    Write ``frame`` as a CSV backup at ``path`` and return a summary.

    List columns are joined with ``|`` so the file can be loaded again with
    ``load_restaurants``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    out = frame.copy()
    for column in LIST_COLUMNS:
        out[column] = out[column].apply(LIST_SEPARATOR.join)
    out.to_csv(path, index=False)

    sample = None
    if len(frame):
        first = frame.iloc[0]
        sample = {
            "name": first["name"],
            "cuisine_type": first["cuisine_type"],
            "city": first["city"],
            "rating": None if pd.isna(first["rating"]) else float(first["rating"]),
        }
    return {
        "total_records": len(frame),
        "path": str(path),
        "timestamp": utc_now().isoformat(),
        "sample": sample,
    }


if __name__ == "__main__":
    import sys

    from .data_store import get_store

    target = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("backups/restaurants.csv")
    summary = export_restaurants(get_store().snapshot(), target)
    print(f"Backup complete: {summary['total_records']} restaurants saved to {summary['path']}")
