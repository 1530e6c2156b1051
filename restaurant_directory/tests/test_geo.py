from __future__ import annotations

import pytest

from restaurant_directory.errors import DirectoryValidationError
from restaurant_directory.query.geo import geo_clause
from restaurant_directory.query.predicates import GeoNear


def test_no_coordinates_means_no_clause():
    assert geo_clause({}, default_radius=5000) is None


def test_clause_uses_default_radius():
    clause = geo_clause({"longitude": "-99.16", "latitude": "19.42"}, default_radius=5000)
    assert clause == GeoNear(longitude=-99.16, latitude=19.42, max_distance=5000)


def test_custom_radius_param():
    clause = geo_clause(
        {"longitude": "-99.16", "latitude": "19.42", "location_radius": "1200"},
        default_radius=5000,
        radius_param="location_radius",
    )
    assert clause.max_distance == 1200


def test_one_coordinate_is_rejected():
    with pytest.raises(DirectoryValidationError) as exc_info:
        geo_clause({"longitude": "-99.16"}, default_radius=5000)
    assert exc_info.value.details[0]["field"] == "latitude"


def test_required_coordinates():
    with pytest.raises(DirectoryValidationError):
        geo_clause({}, default_radius=5000, required=True)


@pytest.mark.parametrize("params, field", [
    ({"longitude": "200", "latitude": "19"}, "longitude"),
    ({"longitude": "-99", "latitude": "-91"}, "latitude"),
    ({"longitude": "abc", "latitude": "19"}, "longitude"),
    ({"longitude": "-99", "latitude": "19", "radius": "0"}, "radius"),
    ({"longitude": "-99", "latitude": "19", "radius": "-5"}, "radius"),
])
def test_invalid_geo_values(params, field):
    with pytest.raises(DirectoryValidationError) as exc_info:
        geo_clause(params, default_radius=5000)
    assert field in {d["field"] for d in exc_info.value.details}
