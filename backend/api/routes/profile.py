"""
Profile and dashboard stats API routes.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.auth import get_current_user
from api.schemas.profile import ProfileResponse, ProfileUpdateRequest, UserStatsResponse
from infrastructure.database.connection import get_db
from infrastructure.database.models import Page, Post, PostStatus, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["Profile"])


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Get the signed-in user's public profile.
    """
    return current_user


@router.patch("/profile", response_model=ProfileResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Update profile fields. Email, username, id and timestamps cannot be
    changed here and are silently ignored.
    """
    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(current_user, field, value)

    await db.commit()
    await db.refresh(current_user)

    logger.info(
        "Profile updated: %s", ", ".join(sorted(changes)) or "no changes",
        extra={"user_id": current_user.id},
    )
    return current_user


@router.get("/stats", response_model=UserStatsResponse)
async def get_stats(
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> UserStatsResponse:
    """
    Counters for the dashboard overview.
    """
    published = case((Post.status == PostStatus.PUBLISHED.value, 1), else_=0)
    result = await db.execute(
        select(
            func.count(Post.id),
            func.coalesce(func.sum(published), 0),
            func.coalesce(func.sum(Post.views), 0),
        ).where(Post.user_id == current_user.id)
    )
    total_posts, published_posts, total_views = result.one()

    pages_result = await db.execute(
        select(func.count(Page.id)).where(Page.user_id == current_user.id)
    )

    return UserStatsResponse(
        total_posts=total_posts,
        published_posts=published_posts,
        draft_posts=total_posts - published_posts,
        total_views=total_views,
        total_pages=pages_result.scalar_one(),
    )
