"""
Media upload API routes.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.storage import (
    InvalidMediaError,
    StorageAdapter,
    StorageError,
    get_storage_adapter,
    validate_upload,
)
from api.middleware.rate_limit import limiter
from api.routes.auth import get_current_user
from api.schemas.media import MediaListResponse, MediaResponse
from api.utils import is_uuid
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import Media, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/media", tags=["Media"])


@router.post("", response_model=MediaResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def upload_media(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    storage: StorageAdapter = Depends(get_storage_adapter),
) -> Media:
    """
    Upload an image for use in posts and pages.

    Accepts PNG, JPEG, GIF, WebP and SVG up to the configured size limit.
    """
    # One byte over the limit is enough to reject the file
    data = await file.read(settings.media_max_bytes + 1)
    try:
        content_type = validate_upload(file.content_type, data, settings.media_max_bytes)
    except InvalidMediaError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    filename = file.filename or "upload"
    try:
        path = await storage.save(data, filename, current_user.id, content_type)
    except StorageError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save file to storage",
        ) from e

    media = Media(
        user_id=current_user.id,
        filename=filename[:255],
        path=path,
        url=storage.public_url(path),
        content_type=content_type,
        size_bytes=len(data),
    )
    db.add(media)
    await db.commit()
    await db.refresh(media)

    logger.info(
        "Uploaded media %s (%d bytes)", media.id, media.size_bytes,
        extra={"user_id": current_user.id},
    )
    return media


@router.get("", response_model=MediaListResponse)
async def list_media(
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> MediaListResponse:
    result = await db.execute(
        select(Media)
        .where(Media.user_id == current_user.id)
        .order_by(Media.created_at.desc(), Media.id.desc())
    )
    items = result.scalars().all()
    return MediaListResponse(items=items, total=len(items))


@router.delete("/{media_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_media(
    media_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
    storage: StorageAdapter = Depends(get_storage_adapter),
) -> None:
    """
    Delete an upload and its file.
    """
    media = None
    if is_uuid(media_id):
        result = await db.execute(
            select(Media).where(Media.id == media_id, Media.user_id == current_user.id)
        )
        media = result.scalar_one_or_none()
    if media is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Media not found")

    try:
        await storage.delete(media.path)
    except StorageError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete file from storage",
        ) from e

    await db.delete(media)
    await db.commit()
    logger.info("Deleted media %s", media_id, extra={"user_id": current_user.id})
