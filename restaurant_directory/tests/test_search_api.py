from __future__ import annotations

from restaurant_directory import service
from restaurant_directory.errors import StoreError
from restaurant_directory.store.data_store import RestaurantStore

from conftest import CDMX_CENTER, SAMPLE_RESTAURANTS


def test_nearby_requires_coordinates(client):
    resp = client.get("/api/restaurants/nearby")
    assert resp.status_code == 400
    assert {d["field"] for d in resp.json()["details"]} == {"longitude", "latitude"}


def test_nearby_sorted_by_distance_within_radius(client):
    resp = client.get("/api/restaurants/nearby", params={**CDMX_CENTER, "radius": 3000})
    assert resp.status_code == 200
    body = resp.json()
    assert [r["id"] for r in body["data"]] == ["r3", "r7", "r5"]
    assert all(r["distance"] <= 3000 for r in body["data"])
    assert body["search_criteria"] == {
        "center": [-99.165, 19.419],
        "radius_meters": 3000,
        "limit": 10,
    }


def test_nearby_respects_limit(client):
    body = client.get("/api/restaurants/nearby", params={**CDMX_CENTER, "limit": 1}).json()
    assert [r["id"] for r in body["data"]] == ["r3"]


def test_advanced_relevance_search_sorts_by_score(client):
    body = client.get("/api/restaurants/search/advanced", params={"q": "mariscos"}).json()
    assert {r["id"] for r in body["data"]} == {"r3", "r4"}
    assert body["search_metadata"]["sort"][0] == {"field": "text_score", "order": "desc"}


def test_advanced_filters(client):
    body = client.get("/api/restaurants/search/advanced", params={
        "price_range": "1-2",
        "amenities": "delivery",
        "rating_min": 4.2,
    }).json()
    # equal ratings fall back to name order
    assert [r["id"] for r in body["data"]] == ["r7", "r1"]
    assert body["search_metadata"]["sort"][0] == {"field": "rating", "order": "desc"}


def test_advanced_geo_uses_location_radius(client):
    body = client.get("/api/restaurants/search/advanced", params={
        **CDMX_CENTER,
        "location_radius": 600,
        "sort_by": "distance",
    }).json()
    assert [r["id"] for r in body["data"]] == ["r3", "r7"]


def test_advanced_rejects_bad_params(client):
    resp = client.get("/api/restaurants/search/advanced", params={
        "cuisine_types": "Martian",
        "price_range": "4-1",
    })
    assert resp.status_code == 400
    assert {"cuisine_types", "price_range"} <= {d["field"] for d in resp.json()["details"]}


def test_advanced_includes_suggestions(client):
    body = client.get("/api/restaurants/search/advanced", params={
        "q": "roma",
        "include_suggestions": "true",
    }).json()
    assert body["search_metadata"]["suggestions"]["locations"] == ["Roma Norte"]


def test_suggestion_failure_keeps_primary_results(client, monkeypatch):
    real_find = RestaurantStore.find
    calls = {"n": 0}

    def flaky_find(self, plan):
        calls["n"] += 1
        if calls["n"] > 1:
            raise StoreError("suggestions index unavailable")
        return real_find(self, plan)

    monkeypatch.setattr(RestaurantStore, "find", flaky_find)
    resp = client.get("/api/restaurants/search/advanced", params={
        "q": "mariscos",
        "include_suggestions": "true",
    })
    assert resp.status_code == 200
    body = resp.json()
    assert {r["id"] for r in body["data"]} == {"r3", "r4"}
    assert body["search_metadata"]["suggestions"] == {
        "restaurants": [], "cuisines": [], "locations": [], "categories": [],
    }


def test_store_failure_is_500(client, monkeypatch):
    def broken_find(self, plan):
        raise StoreError("store offline")

    monkeypatch.setattr(RestaurantStore, "find", broken_find)
    resp = client.get("/api/restaurants")
    assert resp.status_code == 500
    assert resp.json()["success"] is False


def test_autocomplete_rejects_single_character(client):
    resp = client.get("/api/restaurants/search/autocomplete", params={"q": "t"})
    assert resp.status_code == 400
    assert resp.json()["details"][0]["field"] == "q"


def test_autocomplete_groups_matches(client):
    resp = client.get("/api/restaurants/search/autocomplete", params={"q": "ma"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["query"] == "ma"
    suggestions = body["suggestions"]
    assert "Mariscos" in suggestions["cuisines"]
    for bucket in suggestions.values():
        assert len(bucket) <= 5


def test_autocomplete_restaurant_shape(client):
    body = client.get("/api/restaurants/search/autocomplete", params={"q": "pujol"}).json()
    assert body["suggestions"]["restaurants"] == [
        {"id": "r2", "name": "Pujol", "cuisine_type": "Gourmet", "city": "Ciudad de México"},
    ]


def test_autocomplete_limit_bounds(client):
    resp = client.get("/api/restaurants/search/autocomplete", params={"q": "ma", "limit": 50})
    assert resp.status_code == 400


def test_autocomplete_crowded_names_leave_room_for_locations():
    crowded = [
        {"id": f"m{i}", "name": f"Monte {i}", "cuisine_type": "Mexicana", "category": ["Casual"],
         "city": "Puebla", "price_level": 1, "rating": 5.0}
        for i in range(30)
    ]
    store = RestaurantStore.from_records([*crowded, *SAMPLE_RESTAURANTS])

    suggestions = service.autocomplete({"q": "mon"}, store).suggestions
    assert len(suggestions["restaurants"]) == 5
    assert suggestions["locations"] == ["Monterrey"]
