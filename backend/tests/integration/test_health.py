"""Integration tests for health check endpoints."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

pytestmark = pytest.mark.asyncio

REQUEST_ID = "6f1c1e4e-2b7a-4a8e-9d7f-0d8f7e1c2b3a"


class TestHealth:
    async def test_health(self, async_client: AsyncClient):
        response = await async_client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["app"] == "Minispace"
        assert "timestamp" in data

    async def test_health_db(self, async_client: AsyncClient):
        data = (await async_client.get("/api/health/db")).json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"

    async def test_ready(self, async_client: AsyncClient):
        response = await async_client.get("/api/health/ready")
        assert response.status_code == 200
        assert response.json() == {"ready": True, "database": "ok"}

    async def test_not_ready_when_database_fails(
        self, async_client: AsyncClient, db_session: AsyncSession, monkeypatch
    ):
        async def broken_execute(*args, **kwargs):
            raise ConnectionError("database is down")

        monkeypatch.setattr(db_session, "execute", broken_execute)

        response = await async_client.get("/api/health/ready")
        assert response.status_code == 503
        assert response.json()["ready"] is False

    async def test_live(self, async_client: AsyncClient):
        assert (await async_client.get("/api/health/live")).json() == {"alive": True}

    async def test_request_id_and_security_headers(self, async_client: AsyncClient):
        response = await async_client.get("/api/health", headers={"X-Request-ID": REQUEST_ID})

        assert response.headers["X-Request-ID"] == REQUEST_ID
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    async def test_root(self, async_client: AsyncClient):
        response = await async_client.get("/")
        assert response.status_code == 200
        assert response.json()["app"] == "Minispace"

    async def test_malformed_request_id_replaced(self, async_client: AsyncClient):
        response = await async_client.get("/api/health", headers={"X-Request-ID": "bad id"})
        assert response.headers["X-Request-ID"] != "bad id"
