"""
Media upload schemas.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class MediaResponse(BaseModel):
    id: str
    url: str
    filename: str
    content_type: str
    size_bytes: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MediaListResponse(BaseModel):
    items: list[MediaResponse]
    total: int
