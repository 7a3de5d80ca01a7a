"""Integration tests for API routers."""

from __future__ import annotations

from fastapi.testclient import TestClient


def _make_creator(client: TestClient, **overrides) -> dict:
    body = {
        "name": "Creator",
        "niche": "fitness",
        "total_followers": 8_000,
        "avg_engagement_rate": 4.0,
        "completed_campaigns": 3,
        "rating": 4.2,
        "social_accounts": [{"platform": "instagram", "followers": 8_000, "verified": True}],
    }
    body.update(overrides)
    resp = client.post("/api/creators", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()


def _make_campaign(client: TestClient, **overrides) -> dict:
    body = {
        "title": "Spring launch",
        "description": "Protein bar launch",
        "requirements": {"niche": "fitness", "min_followers": 5_000, "platforms": ["instagram"]},
        "status": "active",
    }
    body.update(overrides)
    resp = client.post("/api/campaigns", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_health(api_client: TestClient):
    resp = api_client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_creator_crud_and_search(api_client: TestClient):
    first = _make_creator(api_client, name="Low rated", rating=3.0)
    second = _make_creator(api_client, name="Top rated", niche="beauty", rating=4.9, total_followers=30_000)

    resp = api_client.get("/api/creators")
    assert resp.status_code == 200
    assert [c["name"] for c in resp.json()["creators"]] == ["Top rated", "Low rated"]

    resp = api_client.get("/api/creators", params={"niche": "fitness"})
    assert resp.json()["total"] == 1
    assert resp.json()["creators"][0]["id"] == first["id"]

    resp = api_client.get("/api/creators", params={"min_followers": 10_000})
    assert [c["id"] for c in resp.json()["creators"]] == [second["id"]]

    resp = api_client.put(f"/api/creators/{first['id']}", json={"rates": {"post": 300}, "rating": 5.0})
    assert resp.status_code == 200
    assert resp.json()["rates"] == {"post": 300}
    assert resp.json()["rating"] == 5.0
    assert resp.json()["niche"] == "fitness"

    assert api_client.get(f"/api/creators/{first['id']}").json()["rating"] == 5.0
    assert api_client.get("/api/creators/9999").status_code == 404


def test_creator_validation(api_client: TestClient):
    resp = api_client.post("/api/creators", json={"name": "Bad", "niche": "tech", "rating": 7})
    assert resp.status_code == 422


def test_campaign_listing_filters(api_client: TestClient):
    _make_campaign(api_client, title="Draft idea", status="draft")
    active = _make_campaign(api_client, title="Summer skincare", description="SPF drop")

    resp = api_client.get("/api/campaigns")
    assert [c["id"] for c in resp.json()] == [active["id"]]

    resp = api_client.get("/api/campaigns", params={"status": "draft"})
    assert [c["title"] for c in resp.json()] == ["Draft idea"]

    resp = api_client.get("/api/campaigns", params={"search": "spf"})
    assert [c["id"] for c in resp.json()] == [active["id"]]

    resp = api_client.put(f"/api/campaigns/{active['id']}", json={"status": "paused"})
    assert resp.json()["status"] == "paused"
    assert api_client.get("/api/campaigns").json() == []

    assert api_client.delete(f"/api/campaigns/{active['id']}").json() == {"status": "deleted"}
    assert api_client.get(f"/api/campaigns/{active['id']}").status_code == 404


def test_campaign_matches_rank_eligible_creators(api_client: TestClient):
    campaign = _make_campaign(api_client)
    wellness = _make_creator(api_client, name="Wellness", niche="wellness")
    exact = _make_creator(api_client, name="Exact", niche="fitness")
    _make_creator(api_client, name="Too small", niche="fitness", total_followers=4_999)
    _make_creator(api_client, name="No instagram", social_accounts=[{"platform": "tiktok"}])

    resp = api_client.get(f"/api/campaigns/{campaign['id']}/matches")
    assert resp.status_code == 200
    payload = resp.json()

    assert payload["total"] == 2
    assert [m["creator_id"] for m in payload["matches"]] == [exact["id"], wellness["id"]]

    top, second = payload["matches"]
    assert top["confidence"] == "high"
    assert top["explanation"][0] == "Excellent match - highly recommended"
    assert second["score"] == 0.81
    assert second["confidence"] == "medium"
    assert second["breakdown"]["niche_match"] == 0.7

    resp = api_client.get(f"/api/campaigns/{campaign['id']}/matches", params={"limit": 1})
    assert [m["creator_id"] for m in resp.json()["matches"]] == [exact["id"]]

    assert api_client.get(f"/api/campaigns/{campaign['id']}/matches", params={"limit": 0}).status_code == 422
    assert api_client.get("/api/campaigns/9999/matches").status_code == 404


def test_single_match_reports_eligibility(api_client: TestClient):
    campaign = _make_campaign(api_client)
    small = _make_creator(api_client, total_followers=2_500)

    resp = api_client.get(f"/api/campaigns/{campaign['id']}/matches/{small['id']}")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["eligible"] is False
    assert payload["breakdown"]["follower_match"] == 0.5
    assert payload["explanation"]

    assert api_client.get(f"/api/campaigns/{campaign['id']}/matches/9999").status_code == 404


def test_export_matches_csv(api_client: TestClient):
    campaign = _make_campaign(api_client)
    creator = _make_creator(api_client)

    resp = api_client.get(f"/api/campaigns/{campaign['id']}/matches/export")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    lines = resp.text.strip().splitlines()
    assert lines[0].startswith("Creator ID,Score,Confidence")
    assert lines[1].startswith(f"{creator['id']},")


def test_creator_matches_only_active_campaigns(api_client: TestClient):
    creator = _make_creator(api_client)
    _make_campaign(api_client, title="Draft", status="draft")
    related = _make_campaign(api_client, title="Wellness", requirements={"niche": "wellness"})
    exact = _make_campaign(api_client, title="Fitness")

    resp = api_client.get(f"/api/creators/{creator['id']}/matches")
    assert resp.status_code == 200
    assert [m["campaign_id"] for m in resp.json()["matches"]] == [exact["id"], related["id"]]
    assert api_client.get("/api/creators/9999/matches").status_code == 404


def test_applications(api_client: TestClient):
    campaign = _make_campaign(api_client)
    creator = _make_creator(api_client)

    resp = api_client.post(
        f"/api/campaigns/{campaign['id']}/applications",
        json={"creator_id": creator["id"], "proposal_text": "Three reels", "proposed_rate": 450},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "pending"

    resp = api_client.post(
        f"/api/campaigns/{campaign['id']}/applications", json={"creator_id": creator["id"]}
    )
    assert resp.status_code == 400

    assert api_client.get(f"/api/campaigns/{campaign['id']}").json()["applications_count"] == 1

    resp = api_client.get(f"/api/campaigns/{campaign['id']}/applications")
    assert resp.status_code == 200
    [application] = resp.json()
    assert application["creator_id"] == creator["id"]
    assert application["proposed_rate"] == 450
    assert 0.0 <= application["match_score"] <= 1.0


def test_cannot_apply_to_inactive_campaign(api_client: TestClient):
    campaign = _make_campaign(api_client, status="draft")
    creator = _make_creator(api_client)

    resp = api_client.post(
        f"/api/campaigns/{campaign['id']}/applications", json={"creator_id": creator["id"]}
    )
    assert resp.status_code == 400

    resp = api_client.post(f"/api/campaigns/{campaign['id']}/applications", json={"creator_id": 9999})
    assert resp.status_code == 404


def test_negative_rates_and_budgets_are_rejected(api_client: TestClient):
    resp = api_client.post(
        "/api/creators", json={"name": "Cheap", "niche": "tech", "rates": {"post": -50}}
    )
    assert resp.status_code == 422

    resp = api_client.post(
        "/api/campaigns",
        json={"title": "Odd budget", "status": "active", "budget": {"min": -10, "max": 100}},
    )
    assert resp.status_code == 422


def test_matches_with_open_ended_budget(api_client: TestClient):
    campaign = _make_campaign(api_client, budget={"min": 500})
    creator = _make_creator(api_client, rates={"post": 2_000})

    resp = api_client.get(f"/api/campaigns/{campaign['id']}/matches/{creator['id']}")
    assert resp.status_code == 200
    assert resp.json()["breakdown"]["budget_match"] == 1.0


def test_null_for_required_field_is_rejected(api_client: TestClient):
    creator = _make_creator(api_client)
    campaign = _make_campaign(api_client)

    resp = api_client.put(f"/api/creators/{creator['id']}", json={"niche": None})
    assert resp.status_code == 400
    assert "niche" in resp.json()["detail"]

    resp = api_client.put(f"/api/campaigns/{campaign['id']}", json={"title": None})
    assert resp.status_code == 400

    # Nullable columns may still be cleared
    resp = api_client.put(f"/api/campaigns/{campaign['id']}", json={"budget": None})
    assert resp.status_code == 200
    assert resp.json()["budget"] is None


def test_list_campaigns_of_every_status(api_client: TestClient):
    draft = _make_campaign(api_client, title="Draft", status="draft")
    active = _make_campaign(api_client, title="Live")

    resp = api_client.get("/api/campaigns", params={"status": "all"})
    assert resp.status_code == 200
    assert sorted(c["id"] for c in resp.json()) == sorted([draft["id"], active["id"]])
