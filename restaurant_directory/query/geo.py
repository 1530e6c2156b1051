from __future__ import annotations

from typing import Mapping

from ..errors import DirectoryValidationError
from .params import parse_float, raw_value
from .predicates import GeoNear

DISTANCE_FIELD = "distance"


def geo_clause(
    params: Mapping[str, str],
    *,
    default_radius: float,
    radius_param: str = "radius",
    required: bool = False,
) -> GeoNear | None:
    """
    Build the nearest-neighbour clause when both coordinates are supplied.

    Supplying only one of longitude/latitude is a validation error, as is any
    non-numeric or out-of-range value. With ``required`` the coordinates
    themselves are mandatory.
    """
    has_lon = raw_value(params, "longitude") is not None
    has_lat = raw_value(params, "latitude") is not None
    if not has_lon and not has_lat:
        if required:
            raise DirectoryValidationError([
                {"field": "longitude", "message": "Longitude and latitude are required"},
                {"field": "latitude", "message": "Longitude and latitude are required"},
            ])
        return None
    if has_lon != has_lat:
        missing = "latitude" if has_lon else "longitude"
        raise DirectoryValidationError.for_field(
            missing, "Longitude and latitude must be provided together"
        )

    details: list[dict] = []
    values: dict[str, float | None] = {}
    for name, limit in (("longitude", 180.0), ("latitude", 90.0)):
        try:
            values[name] = parse_float(params, name, minimum=-limit, maximum=limit)
        except DirectoryValidationError as exc:
            details.extend(exc.details)
    try:
        radius = parse_float(params, radius_param, default_radius)
    except DirectoryValidationError as exc:
        details.extend(exc.details)
        radius = None
    if radius is not None and radius <= 0:
        details.append({"field": radius_param, "message": "must be greater than 0"})
    if details:
        raise DirectoryValidationError(details)

    return GeoNear(
        longitude=values["longitude"],
        latitude=values["latitude"],
        max_distance=radius,
    )
