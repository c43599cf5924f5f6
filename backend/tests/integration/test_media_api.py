"""Integration tests for media uploads."""

from pathlib import Path

import pytest
from httpx import AsyncClient

from adapters.storage import LocalStorageAdapter
from infrastructure.config.settings import settings
from infrastructure.database.models.user import User

pytestmark = pytest.mark.asyncio

PNG = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01"


async def _upload(client: AsyncClient, headers: dict, name="photo.png", data=PNG, content_type="image/png"):
    return await client.post("/api/media", headers=headers, files={"file": (name, data, content_type)})


class TestUpload:
    async def test_upload_png(
        self, async_client: AsyncClient, test_user: User, auth_headers: dict, storage: LocalStorageAdapter
    ):
        response = await _upload(async_client, auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["filename"] == "photo.png"
        assert data["content_type"] == "image/png"
        assert data["size_bytes"] == len(PNG)
        assert data["url"].startswith(f"/uploads/media/{test_user.id}/")

        stored = storage.base_path / data["url"].removeprefix("/uploads/")
        assert Path(stored).read_bytes() == PNG

    async def test_rejects_disallowed_type(self, async_client: AsyncClient, auth_headers: dict):
        response = await _upload(async_client, auth_headers, name="doc.pdf", data=b"%PDF-1.4", content_type="application/pdf")
        assert response.status_code == 400

    async def test_rejects_mismatched_bytes(self, async_client: AsyncClient, auth_headers: dict):
        response = await _upload(async_client, auth_headers, name="fake.png", data=b"<html></html>")
        assert response.status_code == 400

    async def test_rejects_oversized(self, async_client: AsyncClient, auth_headers: dict, monkeypatch):
        monkeypatch.setattr(settings, "media_max_bytes", 8)
        response = await _upload(async_client, auth_headers)
        assert response.status_code == 400

    async def test_requires_auth(self, async_client: AsyncClient):
        response = await _upload(async_client, {})
        assert response.status_code == 401


class TestManageMedia:
    async def test_list_only_own_media(
        self, async_client: AsyncClient, other_user: User, auth_headers: dict, login_headers
    ):
        await _upload(async_client, auth_headers, name="a.png")
        await _upload(async_client, auth_headers, name="b.png")
        await _upload(async_client, login_headers(other_user), name="c.png")

        data = (await async_client.get("/api/media", headers=auth_headers)).json()

        assert data["total"] == 2
        assert {item["filename"] for item in data["items"]} == {"a.png", "b.png"}

    async def test_delete_removes_file(
        self, async_client: AsyncClient, auth_headers: dict, storage: LocalStorageAdapter
    ):
        data = (await _upload(async_client, auth_headers)).json()
        stored = storage.base_path / data["url"].removeprefix("/uploads/")

        response = await async_client.delete(f"/api/media/{data['id']}", headers=auth_headers)

        assert response.status_code == 204
        assert not stored.exists()
        assert (await async_client.get("/api/media", headers=auth_headers)).json()["total"] == 0

    async def test_delete_other_users_media(
        self, async_client: AsyncClient, other_user: User, auth_headers: dict, login_headers
    ):
        data = (await _upload(async_client, login_headers(other_user))).json()
        response = await async_client.delete(f"/api/media/{data['id']}", headers=auth_headers)
        assert response.status_code == 404

    async def test_delete_malformed_id(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.delete("/api/media/nope", headers=auth_headers)
        assert response.status_code == 404
