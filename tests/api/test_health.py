from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from api.main import app

client = TestClient(app)


def test_healthz():
    response = client.get("/healthz")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["service"] == "case-analysis-api"


def test_readyz_reports_unconfigured_upstreams():
    with patch("api.main.redis_health_check", AsyncMock(return_value=True)):
        response = client.get("/readyz")

    assert response.status_code == 200
    details = response.json()["details"]
    assert details["precedent_index"] == "not_configured"
    assert details["reasoning_backend"] == "not_configured"
    assert details["redis"] == "connected"


def test_request_id_is_echoed():
    response = client.get("/healthz", headers={"X-Request-ID": "req-abc"})

    assert response.headers["x-request-id"] == "req-abc"
