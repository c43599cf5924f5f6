"""Integration tests for the theme catalogue, previews and theme settings."""

import pytest
from httpx import AsyncClient

from infrastructure.database.models.user import User

pytestmark = pytest.mark.asyncio


class TestCatalogue:
    async def test_list_themes(self, async_client: AsyncClient):
        response = await async_client.get("/api/themes")

        assert response.status_code == 200
        data = response.json()
        ids = [theme["id"] for theme in data["items"]]
        assert "altay" in ids
        assert "simple" in ids
        assert data["total"] == len(ids)

    async def test_get_theme(self, async_client: AsyncClient):
        data = (await async_client.get("/api/themes/altay")).json()

        assert data["name"] == "Altay"
        assert data["templates"]["layout"] == "layout.html"
        assert "accent" in data["customization"]["colors"]

    async def test_unknown_theme(self, async_client: AsyncClient):
        response = await async_client.get("/api/themes/nope")
        assert response.status_code == 404


class TestPreview:
    async def test_preview_home(self, async_client: AsyncClient):
        response = await async_client.get("/api/theme-preview", params={"theme": "altay"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "<!DOCTYPE html>" in response.text
        assert 'class="nav-link active"' in response.text

    async def test_preview_post(self, async_client: AsyncClient):
        response = await async_client.get("/api/theme-preview", params={"theme": "simple", "page": "post"})
        assert response.status_code == 200
        assert "Great software is composed; not written" in response.text

    async def test_preview_requires_theme(self, async_client: AsyncClient):
        response = await async_client.get("/api/theme-preview")
        assert response.status_code == 400

    async def test_preview_unknown_theme(self, async_client: AsyncClient):
        response = await async_client.get("/api/theme-preview", params={"theme": "ghost"})
        assert response.status_code == 404

    async def test_preview_rejects_odd_page_names(self, async_client: AsyncClient):
        response = await async_client.get(
            "/api/theme-preview", params={"theme": "altay", "page": "../layout"}
        )
        assert response.status_code == 422


class TestThemeSettings:
    async def test_defaults_when_nothing_saved(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.get("/api/user/theme-settings", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["theme_id"] == "altay"
        assert data["theme_category"] == "personal"
        assert data["settings"] == {}

    async def test_save_and_read_back(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post(
            "/api/user/theme-settings",
            headers=auth_headers,
            json={
                "theme_id": "simple",
                "settings": {"colors": {"text": "#222222"}},
                "custom_css": "body { color: red; } .x { background: url(javascript:alert(1)); }",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["theme_id"] == "simple"
        assert data["theme_name"] == "Simple"
        assert data["settings"] == {"colors": {"text": "#222222"}}
        assert "color: red" in data["custom_css"]
        assert "javascript" not in data["custom_css"]

        again = (await async_client.get("/api/user/theme-settings", headers=auth_headers)).json()
        assert again["theme_id"] == "simple"

    async def test_save_twice_updates_single_record(self, async_client: AsyncClient, auth_headers: dict):
        await async_client.post("/api/user/theme-settings", headers=auth_headers, json={"theme_id": "simple"})
        response = await async_client.post(
            "/api/user/theme-settings", headers=auth_headers, json={"theme_id": "altay", "custom_css": ""}
        )

        assert response.json()["theme_id"] == "altay"
        assert response.json()["custom_css"] is None

    async def test_unknown_theme_rejected(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post(
            "/api/user/theme-settings", headers=auth_headers, json={"theme_id": "ghost"}
        )
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "settings",
        [
            {"colors": "red"},
            {"fonts": ["serif"]},
            {"colors": {"text": {"nested": "x"}}},
            {"options": {"show_bio": [1, 2]}},
        ],
    )
    async def test_malformed_settings_rejected(self, async_client: AsyncClient, auth_headers: dict, settings: dict):
        response = await async_client.post(
            "/api/user/theme-settings",
            headers=auth_headers,
            json={"theme_id": "altay", "settings": settings},
        )
        assert response.status_code == 422

        site = await async_client.get("/testuser")
        assert site.status_code == 200

    async def test_option_values_keep_their_types(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post(
            "/api/user/theme-settings",
            headers=auth_headers,
            json={"theme_id": "altay", "settings": {"options": {"show_bio": False, "columns": 2}}},
        )
        assert response.status_code == 200
        assert response.json()["settings"] == {"options": {"show_bio": False, "columns": 2}}

    async def test_style_breakout_in_custom_css_not_rendered(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post(
            "/api/user/theme-settings",
            headers=auth_headers,
            json={"theme_id": "altay", "custom_css": "a { x: </style><script>alert(1)</script> }"},
        )
        assert response.status_code == 200
        assert "<" not in response.json()["custom_css"]

        site = await async_client.get("/testuser")

        assert site.status_code == 200
        assert "<script>alert(1)</script>" not in site.text

    async def test_requires_auth(self, async_client: AsyncClient):
        response = await async_client.get("/api/user/theme-settings")
        assert response.status_code == 401
