"""
Public profile and dashboard stats schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProfileResponse(BaseModel):
    """Profile as shown in the dashboard; the email is never included."""

    id: str
    username: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    bio: Optional[str] = None
    social_links: Optional[dict[str, str]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdateRequest(BaseModel):
    """
    Editable profile fields.

    Unknown keys (email, username, id, created_at, ...) are ignored rather
    than rejected so clients can send back a whole profile object.
    """

    display_name: Optional[str] = Field(None, max_length=255)
    photo_url: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=2000)
    social_links: Optional[dict[str, str]] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("social_links")
    @classmethod
    def drop_empty_links(cls, v: Optional[dict[str, str]]) -> Optional[dict[str, str]]:
        if v is None:
            return None
        return {k: url.strip() for k, url in v.items() if url and url.strip()}


class UserStatsResponse(BaseModel):
    total_posts: int
    published_posts: int
    draft_posts: int
    total_views: int
    total_pages: int
