"""Parsing of raw (string) request parameters into typed values."""
from __future__ import annotations

import math
from typing import Any, Callable, Mapping, TypeVar

from ..errors import DirectoryValidationError

TRUE_LITERAL = "true"

T = TypeVar("T")


def raw_value(params: Mapping[str, str], name: str) -> str | None:
    """Return the trimmed raw value, or ``None`` when absent or blank."""
    value = params.get(name)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def split_list(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def parse_float(
    params: Mapping[str, str],
    name: str,
    default: float | None = None,
    *,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float | None:
    raw = raw_value(params, name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise DirectoryValidationError.for_field(name, f"'{raw}' is not a number") from None
    if not math.isfinite(value):
        raise DirectoryValidationError.for_field(name, f"'{raw}' is not a finite number")
    _check_bounds(name, value, minimum, maximum)
    return value


def parse_int(
    params: Mapping[str, str],
    name: str,
    default: int | None = None,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int | None:
    raw = raw_value(params, name)
    if raw is None:
        return default
    return to_int(name, raw, minimum=minimum, maximum=maximum)


def to_int(
    name: str,
    raw: str,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise DirectoryValidationError.for_field(name, f"'{raw}' is not an integer") from None
    _check_bounds(name, value, minimum, maximum)
    return value


def _check_bounds(
    name: str,
    value: float,
    minimum: float | None,
    maximum: float | None,
) -> None:
    if minimum is not None and value < minimum:
        raise DirectoryValidationError.for_field(name, f"must be greater than or equal to {minimum}")
    if maximum is not None and value > maximum:
        raise DirectoryValidationError.for_field(name, f"must be less than or equal to {maximum}")


def is_true_flag(params: Mapping[str, str], name: str) -> bool:
    """Only the literal ``"true"`` enables a flag filter."""
    return params.get(name) == TRUE_LITERAL


class ErrorCollector:
    """Run several parsers and report every validation failure at once."""

    def __init__(self) -> None:
        self.details: list[dict] = []

    def run(self, parser: Callable[..., T], *args: Any, **kwargs: Any) -> T | None:
        try:
            return parser(*args, **kwargs)
        except DirectoryValidationError as exc:
            self.details.extend(exc.details)
            return None

    def raise_if_any(self) -> None:
        if self.details:
            raise DirectoryValidationError(self.details)
