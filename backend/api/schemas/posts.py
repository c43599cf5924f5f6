"""
Post and discover feed schemas.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PostStatusValue = Literal["draft", "published"]
SortValue = Literal["newest", "oldest", "a-z", "z-a", "most-viewed"]


def _clean_tags(tags: Optional[list[str]]) -> Optional[list[str]]:
    """Strip, drop empties and de-duplicate while keeping order."""
    if tags is None:
        return None
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class PostCreateRequest(BaseModel):
    """Request to create a post."""

    title: str = Field(..., max_length=500)
    content: Optional[str] = None
    excerpt: Optional[str] = Field(None, max_length=500)
    status: PostStatusValue = "draft"
    tags: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v)


class PostUpdateRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    title: Optional[str] = Field(None, max_length=500)
    content: Optional[str] = None
    excerpt: Optional[str] = Field(None, max_length=500)
    status: Optional[PostStatusValue] = None
    tags: Optional[list[str]] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _clean_tags(v)


class PostStatusRequest(BaseModel):
    status: PostStatusValue


class PostResponse(BaseModel):
    """Post response."""

    id: str
    user_id: str
    title: str
    slug: str
    excerpt: Optional[str] = None
    content: Optional[str] = None
    content_html: Optional[str] = None
    status: str
    tags: list[str] = Field(default_factory=list)
    word_count: int
    read_time: Optional[int] = None
    views: int
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PostListResponse(BaseModel):
    """Paginated list of posts."""

    items: list[PostResponse]
    total: int
    page: int
    page_size: int
    pages: int


class DiscoverPostResponse(BaseModel):
    """A published post in the public feed, with its author."""

    id: str
    title: str
    slug: str
    excerpt: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    read_time: Optional[int] = None
    views: int
    published_at: Optional[datetime] = None
    username: str
    display_name: Optional[str] = None
    url: str


class DiscoverListResponse(BaseModel):
    items: list[DiscoverPostResponse]
    total: int
    page: int
    page_size: int
    pages: int


class TagCount(BaseModel):
    tag: str
    count: int


class TagListResponse(BaseModel):
    items: list[TagCount]
