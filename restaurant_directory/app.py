from __future__ import annotations

import logging
import time

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import service
from .config import DEFAULT_CONFIG, configure_logging
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
from .monitoring.aggregator import REQUEST_EVENT, compute_performance
from .monitoring.store import get_events, record_event
from .store.data_store import RestaurantStore, get_store

configure_logging(DEFAULT_CONFIG)
logger = logging.getLogger(__name__)

app = FastAPI(title="Restaurant Directory API", version="1.0.0")

PREFIX = "/api/restaurants"


# ── Middleware ───────────────────────────────────────────────────────────


@app.middleware("http")
async def track_performance(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000

    response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"
    record_event(REQUEST_EVENT, {
        "method": request.method,
        "path": request.url.path,
        "status_code": response.status_code,
        "response_time_ms": round(elapsed_ms, 2),
    })
    logger.info(
        "%s %s -> %d (%.2fms)",
        request.method, request.url.path, response.status_code, elapsed_ms,
    )
    return response


# ── Error handlers ───────────────────────────────────────────────────────


@app.exception_handler(DirectoryValidationError)
async def directory_validation_error(request: Request, exc: DirectoryValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Validation failed", "details": exc.details},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Validation failed",
            "details": service.validation_details(exc.errors()),
        },
    )


@app.exception_handler(RestaurantNotFoundError)
async def restaurant_not_found(request: Request, exc: RestaurantNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"success": False, "error": "Restaurant not found", "message": str(exc)},
    )


@app.exception_handler(StoreError)
async def store_error(request: Request, exc: StoreError) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error", "message": str(exc)},
    )


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health(store: RestaurantStore = Depends(get_store)) -> dict:
    return {"status": "ok", "restaurants": len(store)}


@app.get("/metrics/performance")
def performance_metrics() -> dict:
    return compute_performance(get_events())


# ── Restaurant collection ────────────────────────────────────────────────
# Fixed paths are registered before /{restaurant_id} so they are not
# captured as ids.


@app.get(PREFIX, response_model=ListResponse)
def list_restaurants(request: Request, store: RestaurantStore = Depends(get_store)) -> ListResponse:
    return service.list_restaurants(request.query_params, store)


@app.post(PREFIX, response_model=ItemResponse, status_code=201)
def create_restaurant(body: RestaurantCreate, store: RestaurantStore = Depends(get_store)) -> ItemResponse:
    return service.create_restaurant(body, store)


@app.get(f"{PREFIX}/nearby", response_model=NearbyResponse)
def nearby_restaurants(request: Request, store: RestaurantStore = Depends(get_store)) -> NearbyResponse:
    return service.nearby_restaurants(request.query_params, store)


@app.get(f"{PREFIX}/stats", response_model=StatsResponse)
def restaurant_stats(store: RestaurantStore = Depends(get_store)) -> StatsResponse:
    return service.restaurant_stats(store)


@app.get(f"{PREFIX}/search/advanced", response_model=ListResponse)
def advanced_search(request: Request, store: RestaurantStore = Depends(get_store)) -> ListResponse:
    return service.advanced_search(request.query_params, store)


@app.get(f"{PREFIX}/search/autocomplete", response_model=AutocompleteResponse)
def autocomplete(request: Request, store: RestaurantStore = Depends(get_store)) -> AutocompleteResponse:
    return service.autocomplete(request.query_params, store)


@app.get(f"{PREFIX}/recommendations", response_model=RecommendationResponse)
def recommendations(request: Request, store: RestaurantStore = Depends(get_store)) -> RecommendationResponse:
    return service.recommendations(request.query_params, store)


@app.get(f"{PREFIX}/categories/{{categories}}", response_model=ListResponse)
def restaurants_by_categories(
    categories: str,
    request: Request,
    store: RestaurantStore = Depends(get_store),
) -> ListResponse:
    return service.restaurants_by_categories(categories, request.query_params, store)


# ── Single restaurant ────────────────────────────────────────────────────


@app.get(f"{PREFIX}/{{restaurant_id}}", response_model=ItemResponse)
def get_restaurant(restaurant_id: str, store: RestaurantStore = Depends(get_store)) -> ItemResponse:
    return service.get_restaurant(restaurant_id, store)


@app.put(f"{PREFIX}/{{restaurant_id}}", response_model=ItemResponse)
def update_restaurant(
    restaurant_id: str,
    body: RestaurantUpdate,
    store: RestaurantStore = Depends(get_store),
) -> ItemResponse:
    return service.update_restaurant(restaurant_id, body, store)


@app.delete(f"{PREFIX}/{{restaurant_id}}", response_model=ItemResponse)
def delete_restaurant(restaurant_id: str, store: RestaurantStore = Depends(get_store)) -> ItemResponse:
    return service.delete_restaurant(restaurant_id, store)
