from __future__ import annotations

from typing import Any


class DirectoryError(Exception):
    """Base class for errors raised while handling a directory request."""


class DirectoryValidationError(DirectoryError):
    """Malformed, out-of-range or missing input. Never reaches the store."""

    def __init__(self, details: list[dict[str, Any]]):
        self.details = details
        fields = ", ".join(d["field"] for d in details)
        super().__init__(f"Invalid parameter(s): {fields}")

    @classmethod
    def for_field(cls, field: str, message: str) -> DirectoryValidationError:
        return cls([{"field": field, "message": message}])


class RestaurantNotFoundError(DirectoryError):
    def __init__(self, restaurant_id: str):
        self.restaurant_id = restaurant_id
        super().__init__(f"No restaurant found with ID: {restaurant_id}")


class StoreError(DirectoryError):
    """The document store failed to serve a request."""
