"""Integration tests for rate limiting middleware."""

import pytest
from httpx import AsyncClient

from infrastructure.database.models.user import User

pytestmark = pytest.mark.asyncio


class TestRateLimitingLogin:
    """Tests for rate limiting on login endpoint."""

    async def test_login_rate_limit_exceeded(self, async_client: AsyncClient, test_user: User):
        """Test that login endpoint is rate limited (5 requests per minute)."""
        for i in range(5):
            response = await async_client.post(
                "/api/auth/login",
                json={"email": f"nonexistent{i}@example.com", "password": "WrongPassword1"},
            )
            # Wrong credentials, not yet limited
            assert response.status_code == 401

        response = await async_client.post(
            "/api/auth/login",
            json={"email": "another@example.com", "password": "WrongPassword1"},
        )
        assert response.status_code == 429


class TestRateLimitingRegister:
    """Tests for rate limiting on register endpoint."""

    async def test_register_rate_limit_exceeded(self, async_client: AsyncClient):
        """Test that register endpoint is rate limited (3 requests per minute)."""
        for i in range(3):
            response = await async_client.post(
                "/api/auth/register",
                json={
                    "email": f"newuser{i}@example.com",
                    "password": "SecurePass123",
                    "username": f"newuser{i}",
                },
            )
            assert response.status_code == 201

        response = await async_client.post(
            "/api/auth/register",
            json={"email": "newuser4@example.com", "password": "SecurePass123", "username": "newuser4"},
        )
        assert response.status_code == 429


class TestRateLimitKeying:
    async def test_limits_are_per_client_ip(self, async_client: AsyncClient):
        for _ in range(5):
            await async_client.post(
                "/api/auth/login",
                headers={"X-Forwarded-For": "203.0.113.7"},
                json={"email": "a@example.com", "password": "WrongPassword1"},
            )

        blocked = await async_client.post(
            "/api/auth/login",
            headers={"X-Forwarded-For": "203.0.113.7"},
            json={"email": "a@example.com", "password": "WrongPassword1"},
        )
        other = await async_client.post(
            "/api/auth/login",
            headers={"X-Forwarded-For": "198.51.100.9"},
            json={"email": "a@example.com", "password": "WrongPassword1"},
        )

        assert blocked.status_code == 429
        assert other.status_code == 401
