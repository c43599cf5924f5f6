"""
Public discover feed and tag cloud.
"""

import json
import logging
import math
from collections import Counter
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import String, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.posts import (
    DiscoverListResponse,
    DiscoverPostResponse,
    SortValue,
    TagCount,
    TagListResponse,
)
from api.utils import escape_like
from infrastructure.database.connection import get_db
from infrastructure.database.models import Post, PostStatus, User, UserStatus
from services.posts import apply_search, sort_clauses
from services.site_routing import NavigationContext, post_link

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Discover"])


def _public_posts_query():
    """Published posts whose author is active, joined with the author."""
    return (
        select(Post, User)
        .join(User, Post.user_id == User.id)
        .where(
            Post.status == PostStatus.PUBLISHED.value,
            User.status == UserStatus.ACTIVE.value,
            User.deleted_at.is_(None),
        )
    )


def _tag_filter(query, tag: Optional[str]):
    tag = (tag or "").strip()
    if not tag:
        return query
    # Tags are stored as a JSON array; match the quoted element exactly
    pattern = f"%{escape_like(json.dumps(tag))}%"
    return query.where(cast(Post.tags, String).like(pattern, escape="\\"))


@router.get("/discover", response_model=DiscoverListResponse)
async def discover(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort: SortValue = Query("newest"),
    search: Optional[str] = Query(None, max_length=200),
    tag: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
):
    """
    List published posts from every active site.
    """
    query = _public_posts_query()
    query = apply_search(query, search)
    query = _tag_filter(query, tag)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(*sort_clauses(sort, by_published=True))
    query = query.offset((page - 1) * limit).limit(limit)
    rows = (await db.execute(query)).all()

    items = []
    for post, author in rows:
        nav = NavigationContext(username=author.username, is_subdomain=False)
        items.append(
            DiscoverPostResponse(
                id=post.id,
                title=post.title,
                slug=post.slug,
                excerpt=post.excerpt,
                tags=post.tags or [],
                read_time=post.read_time,
                views=post.views,
                published_at=post.published_at,
                username=author.username,
                display_name=author.display_name,
                url=post_link(post.slug, nav),
            )
        )

    return DiscoverListResponse(
        items=items,
        total=total,
        page=page,
        page_size=limit,
        pages=math.ceil(total / limit) if total > 0 else 0,
    )


@router.get("/tags", response_model=TagListResponse)
async def list_tags(db: AsyncSession = Depends(get_db)) -> TagListResponse:
    """
    Tags used on published posts, most used first.
    """
    query = (
        select(Post.tags)
        .join(User, Post.user_id == User.id)
        .where(
            Post.status == PostStatus.PUBLISHED.value,
            User.status == UserStatus.ACTIVE.value,
            User.deleted_at.is_(None),
        )
    )
    counts: Counter[str] = Counter()
    for tags in (await db.execute(query)).scalars():
        counts.update(set(tags or []))

    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return TagListResponse(items=[TagCount(tag=tag, count=count) for tag, count in ordered])
