"""
Post lifecycle rules shared by the dashboard API, the discover feed and
the public sites: slugs, derived fields, publishing and list ordering.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Select, String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.utils import (
    calculate_read_time,
    count_words,
    escape_like,
    make_excerpt,
    render_markdown,
    slugify,
)
from infrastructure.database.models import Post, PostStatus

logger = logging.getLogger(__name__)

SORT_OPTIONS = ("newest", "oldest", "a-z", "z-a", "most-viewed")


def sort_clauses(sort: str, by_published: bool = False) -> list:
    """ORDER BY clauses for a sort option; unknown options sort newest first."""
    date_col = Post.published_at if by_published else Post.created_at
    if sort == "oldest":
        return [date_col.asc(), Post.id.asc()]
    if sort == "a-z":
        return [func.lower(Post.title).asc(), Post.id.asc()]
    if sort == "z-a":
        return [func.lower(Post.title).desc(), Post.id.desc()]
    if sort == "most-viewed":
        return [Post.views.desc(), date_col.desc(), Post.id.desc()]
    return [date_col.desc(), Post.id.desc()]


def apply_search(query: Select, term: Optional[str]) -> Select:
    """Case-insensitive substring match on title, excerpt, content and tags."""
    term = (term or "").strip()
    if not term:
        return query
    pattern = f"%{escape_like(term)}%"
    return query.where(
        or_(
            Post.title.ilike(pattern, escape="\\"),
            Post.excerpt.ilike(pattern, escape="\\"),
            Post.content.ilike(pattern, escape="\\"),
            cast(Post.tags, String).ilike(pattern, escape="\\"),
        )
    )


async def slug_exists(
    db: AsyncSession, model, user_id: str, slug: str, exclude_id: Optional[str] = None
) -> bool:
    query = select(func.count()).select_from(model).where(
        model.user_id == user_id, model.slug == slug
    )
    if exclude_id:
        query = query.where(model.id != exclude_id)
    return (await db.execute(query)).scalar_one() > 0


async def unique_slug(
    db: AsyncSession, model, user_id: str, source: str, record_id: str
) -> str:
    """
    Slug for *source* that no other record of this user has.

    Collisions get the first 8 characters of the record id appended; a
    source that slugifies to nothing falls back to that id prefix.
    """
    suffix = record_id[:8]
    slug = slugify(source) or suffix
    if await slug_exists(db, model, user_id, slug, exclude_id=record_id):
        slug = f"{slug}-{suffix}"
    return slug


def apply_content(post: Post, content: Optional[str], excerpt: Optional[str] = None) -> None:
    """Set markdown content and everything derived from it."""
    post.content = content
    post.content_html = render_markdown(content)
    post.word_count = count_words(content)
    post.read_time = calculate_read_time(content)
    if excerpt is not None:
        post.excerpt = excerpt.strip() or make_excerpt(content)
    elif not post.excerpt:
        post.excerpt = make_excerpt(content)


def set_status(post: Post, status: str) -> None:
    """
    Change a post's status. The first publish stamps ``published_at``;
    unpublishing keeps it.
    """
    post.status = PostStatus(status).value
    if post.status == PostStatus.PUBLISHED.value and post.published_at is None:
        post.published_at = datetime.now(timezone.utc)
        logger.info("Post %s published", post.id, extra={"user_id": post.user_id})
