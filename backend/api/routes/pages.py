"""
Custom site page API routes.
"""

import logging
from typing import Annotated
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.auth import get_current_user
from api.schemas.pages import (
    PageCreateRequest,
    PageListResponse,
    PageResponse,
    PageUpdateRequest,
)
from api.utils import is_uuid, render_markdown, slugify
from infrastructure.database.connection import get_db
from infrastructure.database.models import Page, User
from services.posts import slug_exists

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pages", tags=["Pages"])

# Slugs taken by the built-in site routes
RESERVED_PAGE_SLUGS = frozenset({"home", "posts", "post", "dashboard", "api"})


async def _get_owned_page(db: AsyncSession, page_id: str, user: User) -> Page:
    if not is_uuid(page_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")
    result = await db.execute(
        select(Page).where(Page.id == page_id, Page.user_id == user.id)
    )
    page = result.scalar_one_or_none()
    if not page:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Page not found",
        )
    return page


async def _checked_slug(
    db: AsyncSession, user: User, source: str, page_id: str
) -> str:
    """Slugify *source* and reject reserved or already used slugs."""
    slug = slugify(source)[:100] or page_id[:8]
    if slug in RESERVED_PAGE_SLUGS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"The slug '{slug}' is reserved",
        )
    if await slug_exists(db, Page, user.id, slug, exclude_id=page_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"A page with the slug '{slug}' already exists",
        )
    return slug


@router.get("", response_model=PageListResponse)
async def list_pages(
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> PageListResponse:
    result = await db.execute(
        select(Page)
        .where(Page.user_id == current_user.id)
        .order_by(Page.nav_order.asc(), Page.created_at.asc())
    )
    pages = result.scalars().all()
    return PageListResponse(items=pages, total=len(pages))


@router.post("", response_model=PageResponse, status_code=status.HTTP_201_CREATED)
async def create_page(
    body: PageCreateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> Page:
    """
    Create a custom page. The slug is derived from the title when omitted.
    """
    page_id = str(uuid4())
    page = Page(
        id=page_id,
        user_id=current_user.id,
        slug=await _checked_slug(db, current_user, body.slug or body.title, page_id),
        title=body.title,
        description=body.description,
        content=body.content,
        content_html=render_markdown(body.content),
        published=body.published,
        nav_order=body.nav_order,
    )
    db.add(page)
    await db.commit()
    await db.refresh(page)

    logger.info("Created page %s", page.slug, extra={"user_id": current_user.id})
    return page


@router.get("/{page_id}", response_model=PageResponse)
async def get_page(
    page_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> Page:
    return await _get_owned_page(db, page_id, current_user)


@router.put("/{page_id}", response_model=PageResponse)
async def update_page(
    page_id: str,
    body: PageUpdateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> Page:
    """
    Partially update a page. An explicit slug wins over a new title.
    """
    page = await _get_owned_page(db, page_id, current_user)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("slug"):
        page.slug = await _checked_slug(db, current_user, changes["slug"], page.id)
    elif changes.get("title") is not None and changes["title"] != page.title:
        page.slug = await _checked_slug(db, current_user, changes["title"], page.id)

    if changes.get("title") is not None:
        page.title = changes["title"]
    if "description" in changes:
        page.description = changes["description"]
    if "content" in changes:
        page.content = changes["content"]
        page.content_html = render_markdown(changes["content"])
    if changes.get("published") is not None:
        page.published = changes["published"]
    if changes.get("nav_order") is not None:
        page.nav_order = changes["nav_order"]

    await db.commit()
    await db.refresh(page)
    return page


@router.delete("/{page_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_page(
    page_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> None:
    page = await _get_owned_page(db, page_id, current_user)
    await db.delete(page)
    await db.commit()
    logger.info("Deleted page %s", page_id, extra={"user_id": current_user.id})
