"""
Post management API routes.
"""

import logging
import math
from typing import Annotated, Literal, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.auth import get_current_user
from api.utils import is_uuid
from api.schemas.posts import (
    PostCreateRequest,
    PostListResponse,
    PostResponse,
    PostStatusRequest,
    PostUpdateRequest,
    SortValue,
)
from infrastructure.database.connection import get_db
from infrastructure.database.models import Post, User
from services.posts import apply_content, apply_search, set_status, sort_clauses, unique_slug

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])


async def _get_owned_post(db: AsyncSession, post_id: str, user: User) -> Post:
    """Fetch a post owned by *user*; other users' posts are reported as missing."""
    if not is_uuid(post_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    result = await db.execute(
        select(Post).where(Post.id == post_id, Post.user_id == user.id)
    )
    post = result.scalar_one_or_none()
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        )
    return post


@router.get("", response_model=PostListResponse)
async def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Literal["all", "draft", "published"] = Query("all", alias="status"),
    sort: SortValue = Query("newest"),
    search: Optional[str] = Query(None, max_length=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List the signed-in user's posts with filtering, search and sorting.
    """
    query = select(Post).where(Post.user_id == current_user.id)
    if status_filter != "all":
        query = query.where(Post.status == status_filter)
    query = apply_search(query, search)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(*sort_clauses(sort))
    query = query.offset((page - 1) * limit).limit(limit)
    posts = (await db.execute(query)).scalars().all()

    return PostListResponse(
        items=posts,
        total=total,
        page=page,
        page_size=limit,
        pages=math.ceil(total / limit) if total > 0 else 0,
    )


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> Post:
    """
    Create a post. Slug, HTML, word count and read time are derived.
    """
    post_id = str(uuid4())
    post = Post(
        id=post_id,
        user_id=current_user.id,
        title=body.title,
        slug=await unique_slug(db, Post, current_user.id, body.title, post_id),
        tags=body.tags,
        views=0,
    )
    apply_content(post, body.content, body.excerpt)
    set_status(post, body.status)

    db.add(post)
    await db.commit()
    await db.refresh(post)

    logger.info("Created post %s", post.slug, extra={"user_id": current_user.id})
    return post


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> Post:
    return await _get_owned_post(db, post_id, current_user)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    body: PostUpdateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> Post:
    """
    Partially update a post.

    A new title regenerates the slug; new content regenerates the derived
    fields. ``published_at`` is stamped on first publish only.
    """
    post = await _get_owned_post(db, post_id, current_user)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("title") is not None and changes["title"] != post.title:
        post.title = changes["title"]
        post.slug = await unique_slug(db, Post, current_user.id, post.title, post.id)

    if "content" in changes:
        apply_content(post, changes["content"], changes.get("excerpt"))
    elif "excerpt" in changes:
        post.excerpt = (changes["excerpt"] or "").strip() or None

    if changes.get("tags") is not None:
        post.tags = changes["tags"]

    if changes.get("status") is not None:
        set_status(post, changes["status"])

    await db.commit()
    await db.refresh(post)
    return post


@router.patch("/{post_id}/status", response_model=PostResponse)
async def update_post_status(
    post_id: str,
    body: PostStatusRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> Post:
    """
    Switch a post between draft and published.
    """
    post = await _get_owned_post(db, post_id, current_user)
    set_status(post, body.status)
    await db.commit()
    await db.refresh(post)
    return post


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> None:
    post = await _get_owned_post(db, post_id, current_user)
    await db.delete(post)
    await db.commit()
    logger.info("Deleted post %s", post_id, extra={"user_id": current_user.id})
