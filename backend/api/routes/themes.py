"""
Theme catalogue, previews and per-user theme settings.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.auth import get_current_user
from api.schemas.themes import (
    ThemeListResponse,
    ThemeResponse,
    ThemeSettingsRequest,
    ThemeSettingsResponse,
)
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import ThemeSettings, User
from services.css_sanitizer import sanitize_css
from services.theme_loader import (
    TemplateNotFoundError,
    ThemeLoader,
    ThemeManifest,
    ThemeNotFoundError,
    get_theme_loader,
)
from services.theme_renderer import ThemeRenderer, render_preview

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Themes"])

DEFAULT_THEME_CATEGORY = "personal"


def _theme_response(manifest: ThemeManifest) -> ThemeResponse:
    return ThemeResponse(**manifest.model_dump())


@router.get("/themes", response_model=ThemeListResponse)
async def list_themes(
    loader: ThemeLoader = Depends(get_theme_loader),
) -> ThemeListResponse:
    themes = [_theme_response(m) for m in loader.list_themes()]
    return ThemeListResponse(items=themes, total=len(themes))


@router.get("/themes/{theme_id}", response_model=ThemeResponse)
async def get_theme(
    theme_id: str,
    loader: ThemeLoader = Depends(get_theme_loader),
) -> ThemeResponse:
    try:
        return _theme_response(loader.get_theme(theme_id))
    except ThemeNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Theme '{theme_id}' not found",
        )


@router.get("/theme-preview", response_class=HTMLResponse)
async def theme_preview(
    theme: Optional[str] = Query(None, max_length=100),
    page: str = Query("home", pattern=r"^[a-z0-9-]{1,50}$"),
    loader: ThemeLoader = Depends(get_theme_loader),
) -> HTMLResponse:
    """
    Render a theme page with demo content.
    """
    if not theme:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The theme parameter is required",
        )
    try:
        html = render_preview(theme, page, renderer=ThemeRenderer(loader=loader))
    except ThemeNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Theme '{theme}' not found",
        )
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return HTMLResponse(content=html)


@router.get("/user/theme-settings", response_model=ThemeSettingsResponse)
async def get_theme_settings(
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
):
    """
    The signed-in user's theme settings, or the defaults when none are saved.
    """
    result = await db.execute(
        select(ThemeSettings).where(ThemeSettings.user_id == current_user.id)
    )
    saved = result.scalar_one_or_none()
    if saved is None:
        return ThemeSettingsResponse(
            theme_id=settings.default_theme,
            theme_category=DEFAULT_THEME_CATEGORY,
            settings={},
        )
    return saved


@router.post("/user/theme-settings", response_model=ThemeSettingsResponse)
async def save_theme_settings(
    body: ThemeSettingsRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
    loader: ThemeLoader = Depends(get_theme_loader),
) -> ThemeSettings:
    """
    Choose a theme and save its customization. User CSS is sanitized before
    it is stored.
    """
    if not loader.theme_exists(body.theme_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Theme '{body.theme_id}' does not exist",
        )
    manifest = loader.get_theme(body.theme_id)

    result = await db.execute(
        select(ThemeSettings).where(ThemeSettings.user_id == current_user.id)
    )
    record = result.scalar_one_or_none()
    if record is None:
        record = ThemeSettings(user_id=current_user.id)
        db.add(record)

    record.theme_id = body.theme_id
    record.theme_name = body.theme_name or manifest.name
    record.theme_category = body.theme_category or DEFAULT_THEME_CATEGORY
    record.settings = body.settings.model_dump(exclude_unset=True)
    record.custom_css = sanitize_css(body.custom_css) or None

    await db.commit()
    await db.refresh(record)

    logger.info(
        "Saved theme settings (%s)", record.theme_id, extra={"user_id": current_user.id}
    )
    return record
