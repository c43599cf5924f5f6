"""
Custom site page schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PageCreateRequest(BaseModel):
    """Request to create a custom page."""

    title: str = Field(..., max_length=255)
    slug: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    content: Optional[str] = None
    published: bool = False
    nav_order: int = Field(default=0, ge=0, le=1000)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v


class PageUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    slug: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    content: Optional[str] = None
    published: Optional[bool] = None
    nav_order: Optional[int] = Field(None, ge=0, le=1000)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return v


class PageResponse(BaseModel):
    id: str
    user_id: str
    slug: str
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    content_html: Optional[str] = None
    published: bool
    nav_order: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PageListResponse(BaseModel):
    items: list[PageResponse]
    total: int
