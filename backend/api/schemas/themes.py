"""
Theme catalogue and per-user theme settings schemas.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ThemeResponse(BaseModel):
    """A theme manifest as exposed to the dashboard."""

    id: str
    name: str
    description: str = ""
    version: str = "1.0.0"
    author: str = ""
    thumbnail: Optional[str] = None
    category: str = "personal"
    templates: dict[str, str]
    customization: dict[str, Any] = Field(default_factory=dict)


class ThemeListResponse(BaseModel):
    items: list[ThemeResponse]
    total: int


class ThemeCustomization(BaseModel):
    """Saved overrides for a theme's customization groups."""

    colors: dict[str, str] = Field(default_factory=dict)
    fonts: dict[str, str] = Field(default_factory=dict)
    options: dict[str, bool | int | float | str] = Field(default_factory=dict)


class ThemeSettingsRequest(BaseModel):
    theme_id: str = Field(..., min_length=1, max_length=100)
    theme_name: Optional[str] = Field(None, max_length=255)
    theme_category: Optional[str] = Field(None, max_length=100)
    settings: ThemeCustomization = Field(default_factory=ThemeCustomization)
    custom_css: Optional[str] = None


class ThemeSettingsResponse(BaseModel):
    theme_id: str
    theme_name: Optional[str] = None
    theme_category: Optional[str] = None
    settings: dict[str, Any] = Field(default_factory=dict)
    custom_css: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
