from __future__ import annotations

from datetime import datetime

from fastapi.testclient import TestClient


def test_health_returns_healthy(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["service"] == "external-oauth-callback"


def test_health_timestamp_is_iso_utc(client: TestClient) -> None:
    data = client.get("/health").json()
    ts = datetime.fromisoformat(data["timestamp"])
    assert ts.utcoffset() is not None
    assert ts.utcoffset().total_seconds() == 0


def test_health_makes_no_upstream_calls(client: TestClient, upstreams) -> None:
    client.get("/health")
    assert upstreams.requests == []
