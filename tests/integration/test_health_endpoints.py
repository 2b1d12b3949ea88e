import pytest
from sqlalchemy.exc import OperationalError

from storefront.core.monitoring import metrics

pytestmark = pytest.mark.anyio


async def test_health_reports_connected(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy", "database": "connected"}


async def test_health_unreachable_store_is_503(client, database, monkeypatch):
    async def unreachable():
        raise OperationalError("SELECT 1", None, ConnectionRefusedError("connection refused"))

    monkeypatch.setattr(database, "ping", unreachable)

    resp = await client.get("/health")

    assert resp.status_code == 503
    assert resp.json() == {"status": "unhealthy", "database": "error: OperationalError"}


async def test_request_metrics_are_collected(client):
    await client.get("/products")
    await client.get("/products/41")

    assert metrics.get_counter(
        "http_requests_total", labels={"method": "GET", "path": "/products", "status": "200"}
    ) == 1
    assert metrics.get_counter("http_errors_total", labels={"status": "404"}) == 1

    resp = await client.get("/metrics")
    assert resp.status_code == 200
    body = resp.json()
    assert body["request_latency"]["count"] >= 2
    assert "uptime_seconds" in body


async def test_unknown_route_uses_error_body(client):
    resp = await client.get("/nowhere")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found"}
