"""Integration tests for the post management API."""

import pytest
from httpx import AsyncClient

from infrastructure.database.models.user import User

pytestmark = pytest.mark.asyncio


class TestCreatePost:
    async def test_create_draft(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post(
            "/api/posts",
            headers=auth_headers,
            json={"title": "Hello World", "content": "# Hi\n\nSome words here.", "tags": ["a", " a ", "b", ""]},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["slug"] == "hello-world"
        assert data["status"] == "draft"
        assert data["published_at"] is None
        assert data["views"] == 0
        assert data["word_count"] == 5
        assert data["read_time"] == 1
        assert "<h1>Hi</h1>" in data["content_html"]
        assert data["excerpt"] == "Hi Some words here."
        assert data["tags"] == ["a", "b"]

    async def test_create_published_sets_published_at(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post(
            "/api/posts",
            headers=auth_headers,
            json={"title": "Live", "content": "Now", "status": "published"},
        )
        assert response.json()["published_at"] is not None

    async def test_duplicate_title_gets_unique_slug(self, async_client: AsyncClient, auth_headers: dict):
        first = await async_client.post("/api/posts", headers=auth_headers, json={"title": "Same"})
        second = await async_client.post("/api/posts", headers=auth_headers, json={"title": "Same"})

        assert first.json()["slug"] == "same"
        assert second.json()["slug"] == f"same-{second.json()['id'][:8]}"

    async def test_symbol_title_falls_back_to_id(self, async_client: AsyncClient, auth_headers: dict):
        data = (await async_client.post("/api/posts", headers=auth_headers, json={"title": "!!!"})).json()
        assert data["slug"] == data["id"][:8]

    async def test_blank_title_rejected(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post("/api/posts", headers=auth_headers, json={"title": "   "})
        assert response.status_code == 422

    async def test_invalid_status_rejected(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post(
            "/api/posts", headers=auth_headers, json={"title": "T", "status": "archived"}
        )
        assert response.status_code == 422

    async def test_requires_auth(self, async_client: AsyncClient):
        response = await async_client.post("/api/posts", json={"title": "T"})
        assert response.status_code == 401


class TestListPosts:
    async def test_list_filters_and_paginates(
        self, async_client: AsyncClient, test_user: User, other_user: User, auth_headers: dict, create_post
    ):
        await create_post(test_user, "Alpha")
        await create_post(test_user, "Beta", status="draft")
        await create_post(test_user, "Gamma")
        await create_post(other_user, "Foreign")

        response = await async_client.get("/api/posts", headers=auth_headers)
        data = response.json()
        assert data["total"] == 3
        assert {p["title"] for p in data["items"]} == {"Alpha", "Beta", "Gamma"}

        drafts = (await async_client.get("/api/posts", headers=auth_headers, params={"status": "draft"})).json()
        assert [p["title"] for p in drafts["items"]] == ["Beta"]

        paged = (await async_client.get("/api/posts", headers=auth_headers, params={"limit": 2, "page": 2})).json()
        assert paged["pages"] == 2
        assert len(paged["items"]) == 1

    async def test_sort_and_search(self, async_client: AsyncClient, test_user: User, auth_headers: dict, create_post):
        await create_post(test_user, "banana bread", views=1)
        await create_post(test_user, "Apple pie", views=9, tags=["baking"])
        await create_post(test_user, "cherry tart", views=4, content="Contains 100% butter")

        az = (await async_client.get("/api/posts", headers=auth_headers, params={"sort": "a-z"})).json()
        assert [p["title"] for p in az["items"]] == ["Apple pie", "banana bread", "cherry tart"]

        viewed = (await async_client.get("/api/posts", headers=auth_headers, params={"sort": "most-viewed"})).json()
        assert [p["views"] for p in viewed["items"]] == [9, 4, 1]

        found = (await async_client.get("/api/posts", headers=auth_headers, params={"search": "BAKING"})).json()
        assert [p["title"] for p in found["items"]] == ["Apple pie"]

        literal = (await async_client.get("/api/posts", headers=auth_headers, params={"search": "100%"})).json()
        assert [p["title"] for p in literal["items"]] == ["cherry tart"]

    async def test_unknown_sort_rejected(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.get("/api/posts", headers=auth_headers, params={"sort": "random"})
        assert response.status_code == 422


class TestSinglePost:
    async def test_get_own_post(self, async_client: AsyncClient, test_user: User, auth_headers: dict, create_post):
        post = await create_post(test_user, "Mine")
        response = await async_client.get(f"/api/posts/{post.id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["title"] == "Mine"

    async def test_other_users_post_is_not_found(
        self, async_client: AsyncClient, other_user: User, auth_headers: dict, create_post
    ):
        post = await create_post(other_user, "Theirs")
        for method in ("get", "delete"):
            response = await getattr(async_client, method)(f"/api/posts/{post.id}", headers=auth_headers)
            assert response.status_code == 404

    async def test_malformed_id_is_not_found(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.get("/api/posts/not-a-uuid", headers=auth_headers)
        assert response.status_code == 404

    async def test_update_title_and_content(
        self, async_client: AsyncClient, test_user: User, auth_headers: dict, create_post
    ):
        post = await create_post(test_user, "Old Title", status="draft")
        response = await async_client.put(
            f"/api/posts/{post.id}",
            headers=auth_headers,
            json={"title": "New Title", "content": "one two three"},
        )

        data = response.json()
        assert response.status_code == 200
        assert data["slug"] == "new-title"
        assert data["word_count"] == 3
        assert data["status"] == "draft"

    async def test_publish_keeps_first_published_at(
        self, async_client: AsyncClient, test_user: User, auth_headers: dict, create_post
    ):
        post = await create_post(test_user, "Flip", status="draft")

        published = await async_client.patch(
            f"/api/posts/{post.id}/status", headers=auth_headers, json={"status": "published"}
        )
        first_published_at = published.json()["published_at"]
        assert first_published_at is not None

        draft = await async_client.patch(
            f"/api/posts/{post.id}/status", headers=auth_headers, json={"status": "draft"}
        )
        assert draft.json()["status"] == "draft"
        assert draft.json()["published_at"] == first_published_at

        again = await async_client.patch(
            f"/api/posts/{post.id}/status", headers=auth_headers, json={"status": "published"}
        )
        assert again.json()["published_at"] == first_published_at

    async def test_delete(self, async_client: AsyncClient, test_user: User, auth_headers: dict, create_post):
        post = await create_post(test_user, "Gone")

        response = await async_client.delete(f"/api/posts/{post.id}", headers=auth_headers)
        assert response.status_code == 204

        response = await async_client.get(f"/api/posts/{post.id}", headers=auth_headers)
        assert response.status_code == 404
