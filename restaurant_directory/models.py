from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CuisineType(str, Enum):
    mexicana = "Mexicana"
    italiana = "Italiana"
    americana = "Americana"
    china = "China"
    japonesa = "Japonesa"
    francesa = "Francesa"
    india = "India"
    cafe = "Café"
    vegetariana = "Vegetariana"
    vegana = "Vegana"
    mariscos = "Mariscos"
    parrilla = "Parrilla"
    comida_rapida = "Comida Rápida"
    gourmet = "Gourmet"
    internacional = "Internacional"


CUISINE_TYPES: frozenset[str] = frozenset(c.value for c in CuisineType)

AMENITY_FIELDS: tuple[str, ...] = (
    "delivery_available",
    "takeout_available",
    "wifi_available",
    "outdoor_seating",
    "accessibility_wheelchair",
    "accessibility_parking",
    "reservations_accepted",
    "payment_cash",
    "payment_card",
    "payment_digital",
)

WEEKDAYS: tuple[str, ...] = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)

_PHONE_PATTERN = r"^\+?[\d\s\-\(\)]+$"
_EMAIL_PATTERN = r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$"
_WEBSITE_PATTERN = r"^https?://"


class RestaurantFields(BaseModel):
    """Every writable restaurant field, all optional (partial update shape)."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    category: list[str] | None = Field(default=None, min_length=1)
    cuisine_type: CuisineType | None = None
    tags: list[str] | None = None

    phone: str | None = Field(default=None, pattern=_PHONE_PATTERN)
    email: str | None = Field(default=None, pattern=_EMAIL_PATTERN)
    website: str | None = Field(default=None, pattern=_WEBSITE_PATTERN)
    facebook: str | None = None
    instagram: str | None = None

    street: str | None = None
    neighborhood: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    zipcode: str | None = None
    full_address: str | None = None
    longitude: float | None = Field(default=None, ge=-180, le=180)
    latitude: float | None = Field(default=None, ge=-90, le=90)

    price_level: int | None = Field(default=None, ge=1, le=4)
    avg_cost_per_person: float | None = Field(default=None, ge=0)
    min_cost: float | None = Field(default=None, ge=0)
    max_cost: float | None = Field(default=None, ge=0)

    rating: float | None = Field(default=None, ge=1, le=5)
    total_reviews: int | None = Field(default=None, ge=0)

    delivery_available: bool | None = None
    takeout_available: bool | None = None
    wifi_available: bool | None = None
    outdoor_seating: bool | None = None
    accessibility_wheelchair: bool | None = None
    accessibility_parking: bool | None = None
    reservations_accepted: bool | None = None
    payment_cash: bool | None = None
    payment_card: bool | None = None
    payment_digital: bool | None = None

    monday_open: str | None = None
    monday_close: str | None = None
    tuesday_open: str | None = None
    tuesday_close: str | None = None
    wednesday_open: str | None = None
    wednesday_close: str | None = None
    thursday_open: str | None = None
    thursday_close: str | None = None
    friday_open: str | None = None
    friday_close: str | None = None
    saturday_open: str | None = None
    saturday_close: str | None = None
    sunday_open: str | None = None
    sunday_close: str | None = None

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, with enums unwrapped."""
        return self.model_dump(mode="json", exclude_unset=True)


class RestaurantCreate(RestaurantFields):
    name: str = Field(..., min_length=1, max_length=100)
    category: list[str] = Field(..., min_length=1)
    cuisine_type: CuisineType
    tags: list[str] = Field(default_factory=list)
    total_reviews: int = Field(default=0, ge=0)

    delivery_available: bool = False
    takeout_available: bool = False
    wifi_available: bool = False
    outdoor_seating: bool = False
    accessibility_wheelchair: bool = False
    accessibility_parking: bool = False
    reservations_accepted: bool = False
    payment_cash: bool = True
    payment_card: bool = True
    payment_digital: bool = False

    @model_validator(mode="after")
    def _coordinates_together(self) -> RestaurantCreate:
        if (self.longitude is None) != (self.latitude is None):
            raise ValueError("longitude and latitude must be provided together")
        return self

    def document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class RestaurantUpdate(RestaurantFields):
    pass


# ── Response envelope ────────────────────────────────────────────────────


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_restaurants: int
    per_page: int
    has_next: bool
    has_previous: bool


class ListResponse(BaseModel):
    success: bool = True
    data: list[dict[str, Any]]
    pagination: Pagination
    filters_applied: dict[str, Any] = Field(default_factory=dict)
    search_metadata: dict[str, Any] | None = None


class ItemResponse(BaseModel):
    success: bool = True
    message: str | None = None
    data: dict[str, Any]


class NearbyResponse(BaseModel):
    success: bool = True
    data: list[dict[str, Any]]
    search_criteria: dict[str, Any]


class RecommendationResponse(BaseModel):
    success: bool = True
    data: list[dict[str, Any]]
    total_candidates: int
    criteria: dict[str, Any]
    filters_applied: dict[str, Any] = Field(default_factory=dict)


class AutocompleteResponse(BaseModel):
    success: bool = True
    query: str
    suggestions: dict[str, list[Any]]


class StatsResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]
