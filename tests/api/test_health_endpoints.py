"""
API tests for health and metrics endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.api
class TestHealthEndpoints:

    async def test_liveness(self, client: AsyncClient):
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    async def test_health_degraded_without_redis(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["checks"]["redis"]["status"] == "unhealthy"
        assert data["status"] == "degraded"

    async def test_metrics_expose_access_decisions(self, client: AsyncClient):
        await client.get("/api/v1/access")
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "access_decisions_total" in response.text
        assert "tenant_resolutions_total" in response.text
