"""Integration tests for /health, /metrics and the root banner."""

import pytest
from httpx import AsyncClient

from linkmeta.config import settings


class TestLivenessEndpoint:
    @pytest.mark.asyncio
    async def test_liveness_returns_healthy(self, client: AsyncClient):
        """GET /health returns 200 with status healthy."""
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}


class TestMetricsEndpoint:
    @pytest.mark.asyncio
    async def test_metrics_exposed(self, client: AsyncClient):
        """GET /metrics serves the Prometheus exposition format."""
        resp = await client.get("/metrics")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert "link_resolve_duration_seconds" in resp.text
        assert "link_fetch_attempts_total" in resp.text

    @pytest.mark.asyncio
    async def test_metrics_disabled(self, client: AsyncClient, monkeypatch):
        """GET /metrics returns 404 when metrics are turned off."""
        monkeypatch.setattr(settings, "METRICS_ENABLED", False)
        resp = await client.get("/metrics")
        assert resp.status_code == 404


class TestRoot:
    @pytest.mark.asyncio
    async def test_root_banner(self, client: AsyncClient):
        resp = await client.get("/")
        assert resp.status_code == 200
        data = resp.json()
        assert data["app"] == settings.APP_NAME
        assert data["status"] == "running"
