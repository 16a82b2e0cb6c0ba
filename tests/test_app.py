"""Application factory tests: infrastructure routes and middleware.

The lifespan is not run (ASGITransport does not send lifespan events),
so no database is needed; pipeline routes answer 503 here.
"""

from __future__ import annotations

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.meetflow.main import create_app


@pytest_asyncio.fixture
async def client():
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def test_health_is_ok(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_responses_carry_request_id(client):
    response = await client.get("/health")
    assert response.headers["X-Request-ID"]

    echoed = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert echoed.headers["X-Request-ID"] == "req-123"


async def test_metrics_exposes_pipeline_counters(client):
    await client.get("/health")

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text
    assert "pipeline_runs_total" in response.text
    assert "tasks_materialized_total" in response.text


async def test_pipeline_routes_unavailable_before_startup(client):
    response = await client.get("/api/v1/meetings/project/p1")

    assert response.status_code == 503
