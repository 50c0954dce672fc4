"""
Tests for the HTTP surface
"""

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_scheduler, get_tool_context
from app.main import app
from tests.factories import make_data


@pytest.fixture
def client(ctx):
    app.dependency_overrides[get_tool_context] = lambda: ctx
    app.dependency_overrides[get_scheduler] = lambda: ctx.scheduler
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_list_tools(client):
    resp = client.get("/api/v1/tools")
    assert resp.status_code == 200
    assert len(resp.json()) == 5


def test_call_tool_envelope(client, source):
    source.profiles["bar_x"] = make_data("bar_x")

    resp = client.post("/api/v1/tools/analyze_instagram_profile", json={"username": "bar_x", "posts_limit": 10})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["error"] is None
    assert body["data"]["profile"]["username"] == "bar_x"
    assert set(body["metadata"]) == {"processing_time_ms", "timestamp"}


def test_unknown_tool(client):
    resp = client.post("/api/v1/tools/does_not_exist", json={})
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_validation_error(client):
    resp = client.post("/api/v1/tools/compare_instagram_profiles", json={"usernames": []})
    assert resp.status_code == 422
    body = resp.json()
    assert body["success"] is False
    assert body["error"].startswith("Invalid arguments: usernames")


def test_missing_body_uses_defaults(client, source):
    source.profiles["brand"] = make_data("brand")
    source.profiles["rival_one"] = make_data("rival_one")
    source.profiles["rival_two"] = make_data("rival_two")

    resp = client.post("/api/v1/tools/competitive_analysis")

    assert resp.status_code == 200
    assert len(resp.json()["data"]["competitors"]) == 2


def test_profile_analysis_route(client, source):
    source.profiles["bar_x"] = make_data("bar_x")
    resp = client.get("/api/v1/instagram/analysis", params={"profile": "bar_x"})
    assert resp.status_code == 200
    assert resp.json()["data"]["posts_analyzed"] == 6


def test_profile_analysis_route_not_found(client):
    resp = client.get("/api/v1/instagram/analysis", params={"profile": "ghost"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Profile @ghost not found"


def test_scheduler_stats(client, source):
    source.profiles["a"] = make_data("a")
    client.post("/api/v1/tools/compare_instagram_profiles", json={"usernames": ["a", "ghost"]})

    resp = client.get("/api/v1/tools/stats")

    assert resp.status_code == 200
    assert resp.json()["requests_last_hour"] == 2
    assert resp.json()["status"] == "ok"
