from __future__ import annotations

from fastapi.testclient import TestClient


def test_health_reports_unconfigured_backends(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["checks"] == {"redis": "not_configured", "database": "not_configured"}
    assert isinstance(body["active_timers"], int)


def test_ready_without_database(client: TestClient) -> None:
    assert client.get("/ready").status_code == 200


def test_metrics_endpoint(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
