"""Tests for GET /api/health."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_returns_200(client: AsyncClient):
    resp = await client.get("/api/health/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["database"] == "ok"
    assert data["proxy"] == "direct"


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    resp = await client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Lektorat API"
    assert "editing" in data["endpoints"]


@pytest.mark.asyncio
async def test_process_time_header(client: AsyncClient):
    resp = await client.get("/api/health/")
    assert resp.headers["X-Process-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_health_reports_provider_configuration(client: AsyncClient):
    data = (await client.get("/api/health/")).json()
    assert data["global_keys"] == []
    assert data["default_model"] == "gpt-4o"
