from __future__ import annotations

from conftest import CDMX_CENTER


def test_recommendations_rank_by_score(client):
    resp = client.get("/api/restaurants/recommendations", params={
        "preferred_cuisines": "Mariscos",
        "budget_max": 800,
    })
    assert resp.status_code == 200
    body = resp.json()
    assert [r["id"] for r in body["data"][:2]] == ["r3", "r4"]
    scores = [r["recommendation_score"] for r in body["data"]]
    assert scores == sorted(scores, reverse=True)
    assert body["total_candidates"] == 8
    assert body["criteria"]["scoring_terms"] == ["rating", "cuisine_match", "budget_fit", "popularity"]


def test_recommendation_breakdown_sums_to_score(client):
    body = client.get("/api/restaurants/recommendations", params={"budget_max": 300}).json()
    for r in body["data"]:
        assert abs(sum(r["score_breakdown"].values()) - r["recommendation_score"]) < 1e-3


def test_over_budget_is_penalised(client):
    body = client.get("/api/restaurants/recommendations", params={"budget_max": 100}).json()
    pujol = next(r for r in body["data"] if r["id"] == "r2")
    assert pujol["score_breakdown"]["budget_fit"] == -10


def test_recommendations_with_geo_add_proximity(client):
    body = client.get("/api/restaurants/recommendations", params={**CDMX_CENTER, "radius": 3000}).json()
    assert {r["id"] for r in body["data"]} == {"r3", "r5", "r7"}
    assert all("proximity" in r["score_breakdown"] for r in body["data"])


def test_recommendation_filters(client):
    body = client.get("/api/restaurants/recommendations", params={
        "must_have_amenities": "delivery",
        "location_preference": "cdmx",
        "limit": 2,
    }).json()
    assert len(body["data"]) == 2
    assert body["total_candidates"] == 3
    assert all(r["delivery_available"] for r in body["data"])


def test_recommendations_reject_unknown_cuisine(client):
    resp = client.get("/api/restaurants/recommendations", params={
        "preferred_cuisines": "Martian",
        "budget_max": "-5",
    })
    assert resp.status_code == 400
    assert {d["field"] for d in resp.json()["details"]} == {"preferred_cuisines", "budget_max"}
