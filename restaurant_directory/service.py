"""
Restaurant directory operations.

Each function handles one request: it parses the raw parameters, assembles a
query plan, runs it against the store it is given and formats the response.
Nothing here is kept between calls.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from .config import DEFAULT_CONFIG, DirectoryConfig
from .errors import DirectoryValidationError, RestaurantNotFoundError, StoreError
from .models import (
    AutocompleteResponse,
    ItemResponse,
    ListResponse,
    NearbyResponse,
    RecommendationResponse,
    RestaurantCreate,
    RestaurantUpdate,
    StatsResponse,
)
from .query.filters import (
    ADVANCED_STEPS,
    RECOMMENDATION_STEPS,
    compile_filters,
    validate_cuisines,
)
from .query.geo import DISTANCE_FIELD, geo_clause
from .query.pagination import page_request, paginate
from .query.params import ErrorCollector, parse_float, parse_int, raw_value, split_list
from .query.pipeline import QueryPlan, SortKey, assemble
from .query.predicates import OneOf
from .query.scoring import SCORE_FIELD, recommendation_scoring
from .query.text_search import (
    TEXT_SCORE_FIELD,
    autocomplete_predicate,
    autocomplete_query,
    choose_strategy,
    group_suggestions,
)
from .store.data_store import RestaurantStore

logger = logging.getLogger(__name__)

RATING_DESC = SortKey("rating", descending=True)


def _search_metadata(plan: QueryPlan, **extra: Any) -> dict[str, Any]:
    descriptor = plan.descriptor
    metadata: dict[str, Any] = {
        "sort": [key.describe() for key in descriptor.sort],
        "geo": getattr(plan, "geo", None) is not None,
    }
    if descriptor.text is not None:
        metadata["search"] = descriptor.text.describe()
    metadata.update(extra)
    return metadata


def _page(store: RestaurantStore, plan: QueryPlan, page: int, limit: int, **extra: Any) -> ListResponse:
    data = store.find(plan)
    total = store.count(plan)
    return ListResponse(
        data=data,
        pagination=paginate(total, page, limit),
        filters_applied=plan.filters_applied(),
        search_metadata=_search_metadata(plan, **extra),
    )


# ── Listing and search ───────────────────────────────────────────────────


def list_restaurants(
    params: Mapping[str, str],
    store: RestaurantStore,
    config: DirectoryConfig = DEFAULT_CONFIG,
) -> ListResponse:
    errors = ErrorCollector()
    paging = errors.run(page_request, params, config)
    filters = errors.run(compile_filters, params)
    geo = errors.run(geo_clause, params, default_radius=config.default_radius_meters)
    errors.raise_if_any()

    plan = assemble(
        filters,
        text=choose_strategy(params.get("search")),
        geo=geo,
        sort_by=params.get("sort_by"),
        sort_order=params.get("sort_order"),
        page=paging.page,
        limit=paging.limit,
    )
    return _page(store, plan, paging.page, paging.limit)


def advanced_search(
    params: Mapping[str, str],
    store: RestaurantStore,
    config: DirectoryConfig = DEFAULT_CONFIG,
) -> ListResponse:
    errors = ErrorCollector()
    paging = errors.run(page_request, params, config)
    filters = errors.run(compile_filters, params, ADVANCED_STEPS)
    geo = errors.run(
        geo_clause,
        params,
        default_radius=config.default_radius_meters,
        radius_param="location_radius",
    )
    errors.raise_if_any()

    text = choose_strategy(params.get("q"))
    default_sort = SortKey(TEXT_SCORE_FIELD, True) if text and text.scores_relevance else RATING_DESC
    plan = assemble(
        filters,
        text=text,
        geo=geo,
        sort_by=params.get("sort_by"),
        sort_order=params.get("sort_order"),
        default_sort=default_sort,
        page=paging.page,
        limit=paging.limit,
    )

    response = _page(store, plan, paging.page, paging.limit)
    if params.get("include_suggestions") == "true" and text is not None:
        response.search_metadata["suggestions"] = _suggestions(text.query, store, config)
    return response


def _suggestions(query: str, store: RestaurantStore, config: DirectoryConfig) -> dict[str, list[Any]]:
    """Autocomplete buckets for ``query``; empty when the store cannot serve them."""
    empty: dict[str, list[Any]] = {"restaurants": [], "cuisines": [], "locations": [], "categories": []}
    if len(query) < config.autocomplete_min_length:
        return empty
    try:
        return _autocomplete_buckets(query, config.autocomplete_default_limit, store)
    except StoreError:
        logger.warning("Suggestions unavailable for %r; returning results without them", query, exc_info=True)
        return empty


def _autocomplete_buckets(query: str, limit: int, store: RestaurantStore) -> dict[str, list[Any]]:
    # No window: each bucket is capped after grouping, so a crowd of name
    # matches cannot push location or category matches out of the candidates.
    plan = assemble((autocomplete_predicate(query),), default_sort=RATING_DESC)
    return group_suggestions(store.find(plan), query, limit)


def autocomplete(
    params: Mapping[str, str],
    store: RestaurantStore,
    config: DirectoryConfig = DEFAULT_CONFIG,
) -> AutocompleteResponse:
    errors = ErrorCollector()
    query = errors.run(autocomplete_query, params.get("q"), config.autocomplete_min_length)
    limit = errors.run(
        parse_int,
        params,
        "limit",
        config.autocomplete_default_limit,
        minimum=1,
        maximum=config.autocomplete_max_limit,
    )
    errors.raise_if_any()
    return AutocompleteResponse(query=query, suggestions=_autocomplete_buckets(query, limit, store))


def restaurants_by_categories(
    categories: str,
    params: Mapping[str, str],
    store: RestaurantStore,
    config: DirectoryConfig = DEFAULT_CONFIG,
) -> ListResponse:
    errors = ErrorCollector()
    paging = errors.run(page_request, params, config)
    wanted = split_list(categories or "")
    if not wanted:
        errors.details.append({"field": "categories", "message": "At least one category is required"})
    errors.raise_if_any()

    plan = assemble(
        (OneOf("category", tuple(wanted)),),
        sort_by=params.get("sort_by"),
        sort_order=params.get("sort_order"),
        default_sort=RATING_DESC,
        page=paging.page,
        limit=paging.limit,
    )
    return _page(store, plan, paging.page, paging.limit, categories=wanted)


# ── Geo and recommendations ──────────────────────────────────────────────


def nearby_restaurants(
    params: Mapping[str, str],
    store: RestaurantStore,
    config: DirectoryConfig = DEFAULT_CONFIG,
) -> NearbyResponse:
    errors = ErrorCollector()
    geo = errors.run(geo_clause, params, default_radius=config.default_radius_meters, required=True)
    limit = errors.run(
        parse_int, params, "limit", config.default_page_size, minimum=1, maximum=config.max_page_size
    )
    errors.raise_if_any()

    plan = assemble(geo=geo, default_sort=SortKey(DISTANCE_FIELD), limit=limit)
    return NearbyResponse(
        data=store.find(plan),
        search_criteria={
            "center": [geo.longitude, geo.latitude],
            "radius_meters": geo.max_distance,
            "limit": limit,
        },
    )


def recommendations(
    params: Mapping[str, str],
    store: RestaurantStore,
    config: DirectoryConfig = DEFAULT_CONFIG,
) -> RecommendationResponse:
    errors = ErrorCollector()
    preferred_raw = raw_value(params, "preferred_cuisines")
    preferred = split_list(preferred_raw) if preferred_raw else []
    errors.run(validate_cuisines, preferred, "preferred_cuisines")
    budget_max = errors.run(parse_float, params, "budget_max", minimum=0)
    filters = errors.run(compile_filters, params, RECOMMENDATION_STEPS)
    geo = errors.run(geo_clause, params, default_radius=config.default_radius_meters)
    limit = errors.run(
        parse_int, params, "limit", config.default_page_size, minimum=1, maximum=config.max_page_size
    )
    errors.raise_if_any()

    scoring = recommendation_scoring(preferred, budget_max, geo_active=geo is not None)
    plan = assemble(
        filters,
        geo=geo,
        scoring=scoring,
        default_sort=SortKey(SCORE_FIELD, True),
        limit=limit,
    )
    data = store.find(plan)
    for record in data:
        record["score_breakdown"] = scoring.breakdown(record)

    return RecommendationResponse(
        data=data,
        total_candidates=store.count(plan),
        criteria={
            "preferred_cuisines": preferred,
            "budget_max": budget_max,
            "scoring_terms": scoring.describe(),
            "limit": limit,
        },
        filters_applied=plan.filters_applied(),
    )


# ── Single records ───────────────────────────────────────────────────────


def get_restaurant(restaurant_id: str, store: RestaurantStore) -> ItemResponse:
    record = store.get(restaurant_id)
    if record is None:
        raise RestaurantNotFoundError(restaurant_id)
    return ItemResponse(data=record)


def create_restaurant(payload: RestaurantCreate, store: RestaurantStore) -> ItemResponse:
    record = store.insert(payload.document())
    logger.info("Created restaurant %s (%s)", record["id"], record["name"])
    return ItemResponse(message="Restaurant created successfully", data=record)


def validation_details(errors: list[Any]) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body") or "body",
            "message": err["msg"],
        }
        for err in errors
    ]


def update_restaurant(restaurant_id: str, payload: RestaurantUpdate, store: RestaurantStore) -> ItemResponse:
    existing = store.get(restaurant_id)
    if existing is None:
        raise RestaurantNotFoundError(restaurant_id)
    try:
        merged = RestaurantCreate.model_validate({**existing, **payload.changes()})
    except ValidationError as exc:
        raise DirectoryValidationError(validation_details(exc.errors())) from exc

    record = store.update(restaurant_id, merged.document())
    if record is None:
        raise RestaurantNotFoundError(restaurant_id)
    logger.info("Updated restaurant %s", restaurant_id)
    return ItemResponse(message="Restaurant updated successfully", data=record)


def delete_restaurant(restaurant_id: str, store: RestaurantStore) -> ItemResponse:
    removed = store.delete(restaurant_id)
    if removed is None:
        raise RestaurantNotFoundError(restaurant_id)
    logger.info("Deleted restaurant %s", restaurant_id)
    return ItemResponse(
        message="Restaurant deleted successfully",
        data={"id": removed["id"], "name": removed["name"]},
    )


def restaurant_stats(store: RestaurantStore) -> StatsResponse:
    return StatsResponse(data=store.aggregate_stats())
