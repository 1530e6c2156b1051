"""
Filter compiler.

Turns raw request parameters into a tuple of predicates. Each rule is an
independent step ``(params) -> tuple[Predicate, ...]``; ``compile_filters``
folds the steps in order. Absent or unknown parameters contribute nothing.
"""
from __future__ import annotations

from typing import Callable, Mapping

from ..errors import DirectoryValidationError
from ..models import CUISINE_TYPES
from .params import is_true_flag, parse_float, raw_value, split_list, to_int
from .predicates import Contains, Equals, IsTrue, OneOf, Predicate, Range

FilterStep = Callable[[Mapping[str, str]], tuple[Predicate, ...]]

CITY_ALIASES: dict[str, str] = {
    "cdmx": "Ciudad de México",
    "df": "Ciudad de México",
    "mexico city": "Ciudad de México",
    "ciudad de mexico": "Ciudad de México",
    "gdl": "Guadalajara",
    "mty": "Monterrey",
    "qro": "Querétaro",
    "pue": "Puebla",
}

# request parameter -> record field
AMENITY_PARAMS: dict[str, str] = {
    "delivery": "delivery_available",
    "takeout": "takeout_available",
    "wifi": "wifi_available",
    "outdoor_seating": "outdoor_seating",
    "wheelchair_accessible": "accessibility_wheelchair",
    "parking": "accessibility_parking",
    "reservations": "reservations_accepted",
}

PAYMENT_METHODS: dict[str, str] = {
    "cash": "payment_cash",
    "card": "payment_card",
    "digital": "payment_digital",
}


def resolve_city_alias(city: str) -> str:
    return CITY_ALIASES.get(city.strip().lower(), city)


def validate_cuisines(values: list[str], field: str = "cuisine_type") -> list[str]:
    unknown = [v for v in values if v not in CUISINE_TYPES]
    if unknown:
        raise DirectoryValidationError.for_field(
            field, f"Invalid cuisine type: {', '.join(unknown)}"
        )
    return values


def membership(field: str, raw: str, parse: Callable[[str], object] = str) -> Predicate:
    """Comma-separated values match any of them; a single value is equality."""
    if "," in raw:
        return OneOf(field, tuple(parse(v) for v in split_list(raw)))
    return Equals(field, parse(raw))


def bounded(field: str, gte: float | None, lte: float | None, *, lower: str, upper: str) -> tuple[Predicate, ...]:
    if gte is None and lte is None:
        return ()
    if gte is not None and lte is not None and gte > lte:
        raise DirectoryValidationError([
            {"field": lower, "message": f"must not exceed {upper}"},
            {"field": upper, "message": f"must not be below {lower}"},
        ])
    return (Range(field, gte=gte, lte=lte),)


def _parse_price_level(raw: str) -> int:
    return to_int("price_level", raw, minimum=1, maximum=4)


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def cuisine_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    raw = raw_value(params, "cuisine_type")
    if raw is None:
        return ()
    validate_cuisines(split_list(raw))
    return (membership("cuisine_type", raw),)


def category_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    raw = raw_value(params, "category")
    if raw is None:
        return ()
    return (membership("category", raw),)


def price_level_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    raw = raw_value(params, "price_level")
    if raw is None:
        return ()
    return (membership("price_level", raw, _parse_price_level),)


def rating_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    return bounded(
        "rating",
        parse_float(params, "min_rating", minimum=0, maximum=5),
        parse_float(params, "max_rating", minimum=0, maximum=5),
        lower="min_rating",
        upper="max_rating",
    )


def price_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    return bounded(
        "avg_cost_per_person",
        parse_float(params, "min_price", minimum=0),
        parse_float(params, "max_price", minimum=0),
        lower="min_price",
        upper="max_price",
    )


def city_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    raw = raw_value(params, "city")
    if raw is None:
        return ()
    return (Contains("city", resolve_city_alias(raw)),)


def neighborhood_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    raw = raw_value(params, "neighborhood")
    if raw is None:
        return ()
    return (Contains("neighborhood", raw),)


def amenity_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    return tuple(
        IsTrue(field) for param, field in AMENITY_PARAMS.items() if is_true_flag(params, param)
    )


def payment_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    raw = raw_value(params, "payment_methods")
    if raw is None:
        return ()
    methods = [m.lower() for m in split_list(raw)]
    unknown = [m for m in methods if m not in PAYMENT_METHODS]
    if unknown:
        raise DirectoryValidationError.for_field(
            "payment_methods", f"Unknown payment method: {', '.join(unknown)}"
        )
    return tuple(IsTrue(PAYMENT_METHODS[m]) for m in dict.fromkeys(methods))


DEFAULT_STEPS: tuple[FilterStep, ...] = (
    cuisine_step,
    category_step,
    price_level_step,
    rating_step,
    price_step,
    city_step,
    neighborhood_step,
    amenity_step,
    payment_step,
)


def compile_filters(
    params: Mapping[str, str],
    steps: tuple[FilterStep, ...] = DEFAULT_STEPS,
) -> tuple[Predicate, ...]:
    """Fold every step over ``params``; validation errors from all steps are merged."""
    predicates: tuple[Predicate, ...] = ()
    details: list[dict] = []
    for step in steps:
        try:
            predicates += step(params)
        except DirectoryValidationError as exc:
            details.extend(exc.details)
    if details:
        raise DirectoryValidationError(details)
    return predicates


# ---------------------------------------------------------------------------
# Advanced search and recommendation steps
# ---------------------------------------------------------------------------

# Amenity names accepted in comma lists: request parameter names or record fields.
AMENITY_NAMES: dict[str, str] = {
    **AMENITY_PARAMS,
    **{field: field for field in AMENITY_PARAMS.values()},
    **{field: field for field in PAYMENT_METHODS.values()},
}


def amenity_list(raw: str | None, param: str) -> tuple[Predicate, ...]:
    if raw is None:
        return ()
    names = [n.lower() for n in split_list(raw)]
    unknown = [n for n in names if n not in AMENITY_NAMES]
    if unknown:
        raise DirectoryValidationError.for_field(param, f"Unknown amenity: {', '.join(unknown)}")
    return tuple(IsTrue(field) for field in dict.fromkeys(AMENITY_NAMES[n] for n in names))


def cuisine_types_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    raw = raw_value(params, "cuisine_types")
    if raw is None:
        return ()
    validate_cuisines(split_list(raw), field="cuisine_types")
    return (membership("cuisine_type", raw),)


def price_range_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    """``price_range`` is ``low-high``, a comma list, or a single level."""
    raw = raw_value(params, "price_range")
    if raw is None:
        return ()
    if "-" in raw:
        low, _, high = raw.partition("-")
        low_level = to_int("price_range", low.strip(), minimum=1, maximum=4)
        high_level = to_int("price_range", high.strip(), minimum=1, maximum=4)
        return bounded("price_level", low_level, high_level, lower="price_range", upper="price_range")
    return (membership("price_level", raw, lambda v: to_int("price_range", v, minimum=1, maximum=4)),)


def amenities_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    return amenity_list(raw_value(params, "amenities"), "amenities")


def rating_min_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    minimum = parse_float(params, "rating_min", minimum=0, maximum=5)
    if minimum is None:
        return ()
    return (Range("rating", gte=minimum),)


ADVANCED_STEPS: tuple[FilterStep, ...] = (
    cuisine_types_step,
    price_range_step,
    amenities_step,
    rating_min_step,
)


def must_have_amenities_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    return amenity_list(raw_value(params, "must_have_amenities"), "must_have_amenities")


def location_preference_step(params: Mapping[str, str]) -> tuple[Predicate, ...]:
    raw = raw_value(params, "location_preference")
    if raw is None:
        return ()
    return (Contains("city", resolve_city_alias(raw)),)


RECOMMENDATION_STEPS: tuple[FilterStep, ...] = (
    must_have_amenities_step,
    location_preference_step,
)
