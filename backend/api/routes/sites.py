"""
Public site pages, rendered with the owner's theme.

Mounted at the application root after every other route. Subdomain
requests reach these handlers with the path already rewritten to
``/{username}/...`` by the tenant middleware.
"""

import html
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import Page, Post, PostStatus, ThemeSettings, User
from services.site_builder import build_site_context, page_context, post_context
from services.site_routing import (
    NavigationContext,
    build_navigation_context,
    is_reserved_username,
)
from services.theme_loader import ThemeLoader, get_theme_loader
from services.theme_renderer import ThemeRenderer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sites"], include_in_schema=False)


def not_found_page(message: str = "Page not found") -> HTMLResponse:
    body = (
        "<!DOCTYPE html><html lang=\"en\"><head><meta charset=\"utf-8\">"
        f"<title>Not found · {html.escape(settings.app_name)}</title></head>"
        f"<body><h1>404</h1><p>{html.escape(message)}</p></body></html>"
    )
    return HTMLResponse(content=body, status_code=404)


class SiteNotFound(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SiteRequest:
    """Everything needed to render one page of one user's site."""

    def __init__(self, request: Request, db: AsyncSession, loader: ThemeLoader):
        self.request = request
        self.db = db
        self.loader = loader
        self.user: Optional[User] = None
        self.nav: Optional[NavigationContext] = None

    async def load_user(self, username: str) -> User:
        username = username.lower()
        if is_reserved_username(username):
            raise SiteNotFound("Site not found")
        result = await self.db.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        if user is None or not user.is_active:
            raise SiteNotFound("Site not found")

        host_username = getattr(self.request.state, "site_host_username", None)
        self.user = user
        self.nav = build_navigation_context(
            username=user.username,
            path=self.request.url.path,
            is_subdomain=host_username == user.username,
        )
        return user

    async def published_posts(self) -> list[Post]:
        result = await self.db.execute(
            select(Post)
            .where(Post.user_id == self.user.id, Post.status == PostStatus.PUBLISHED.value)
            .order_by(Post.published_at.desc(), Post.id.desc())
        )
        return list(result.scalars().all())

    async def published_pages(self) -> list[Page]:
        result = await self.db.execute(
            select(Page)
            .where(Page.user_id == self.user.id, Page.published.is_(True))
            .order_by(Page.nav_order.asc(), Page.created_at.asc())
        )
        return list(result.scalars().all())

    async def theme_settings(self) -> Optional[ThemeSettings]:
        result = await self.db.execute(
            select(ThemeSettings).where(ThemeSettings.user_id == self.user.id)
        )
        return result.scalar_one_or_none()

    async def render(self, page_type: str, extra: Optional[dict] = None) -> HTMLResponse:
        posts = await self.published_posts()
        pages = await self.published_pages()
        context = build_site_context(self.user, posts, pages, self.nav)
        context.update(extra or {})

        saved = await self.theme_settings()
        theme_id = saved.theme_id if saved else settings.default_theme
        if not self.loader.theme_exists(theme_id):
            logger.warning(
                "Theme %s not installed; using %s", theme_id, settings.default_theme,
                extra={"user_id": self.user.id},
            )
            theme_id = settings.default_theme

        renderer = ThemeRenderer(loader=self.loader)
        content = renderer.render_page(
            theme_id,
            page_type,
            context,
            self.nav,
            custom_pages=context["customPages"],
            customization=saved.settings if saved else None,
            user_css=(saved.custom_css or "") if saved else "",
        )
        return HTMLResponse(content=content)


async def _serve(site: SiteRequest, username: str, page_type: str, handler=None) -> HTMLResponse:
    try:
        await site.load_user(username)
        extra = await handler() if handler else None
        return await site.render(page_type, extra)
    except SiteNotFound as e:
        return not_found_page(e.message)


def _site(
    request: Request,
    db: AsyncSession = Depends(get_db),
    loader: ThemeLoader = Depends(get_theme_loader),
) -> SiteRequest:
    return SiteRequest(request, db, loader)


@router.get("/{username}", response_class=HTMLResponse)
async def site_home(username: str, site: SiteRequest = Depends(_site)):
    return await _serve(site, username, "home")


@router.get("/{username}/posts", response_class=HTMLResponse)
async def site_posts(username: str, site: SiteRequest = Depends(_site)):
    return await _serve(site, username, "posts")


@router.get("/{username}/post/{slug}", response_class=HTMLResponse)
async def site_post(username: str, slug: str, site: SiteRequest = Depends(_site)):
    async def load_post() -> dict:
        result = await site.db.execute(
            select(Post).where(
                Post.user_id == site.user.id,
                Post.slug == slug,
                Post.status == PostStatus.PUBLISHED.value,
            )
        )
        post = result.scalar_one_or_none()
        if post is None:
            raise SiteNotFound("Post not found")
        await site.db.execute(
            update(Post).where(Post.id == post.id).values(views=Post.views + 1)
        )
        await site.db.commit()
        await site.db.refresh(post)
        return {"post": post_context(post, site.nav)}

    return await _serve(site, username, "post-single", load_post)


async def _published_page(site: SiteRequest, slug: str) -> Optional[Page]:
    result = await site.db.execute(
        select(Page).where(
            Page.user_id == site.user.id,
            Page.slug == slug,
            Page.published.is_(True),
        )
    )
    return result.scalar_one_or_none()


@router.get("/{username}/about", response_class=HTMLResponse)
async def site_about(username: str, site: SiteRequest = Depends(_site)):
    async def load_about() -> dict:
        page = await _published_page(site, "about")
        return {"page": page_context(page, site.nav)} if page else {}

    return await _serve(site, username, "about", load_about)


@router.get("/{username}/{page_slug}", response_class=HTMLResponse)
async def site_page(username: str, page_slug: str, site: SiteRequest = Depends(_site)):
    async def load_page() -> dict:
        page = await _published_page(site, page_slug.lower())
        if page is None:
            raise SiteNotFound("Page not found")
        return {"page": page_context(page, site.nav)}

    return await _serve(site, username, page_slug.lower(), load_page)
