"""
API request and response schemas.
"""

from .auth import (
    LoginRequest,
    PasswordChangeRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UsernameAvailabilityResponse,
    UserResponse,
)
from .media import MediaListResponse, MediaResponse
from .pages import PageCreateRequest, PageListResponse, PageResponse, PageUpdateRequest
from .posts import (
    DiscoverListResponse,
    PostCreateRequest,
    PostListResponse,
    PostResponse,
    PostStatusRequest,
    PostUpdateRequest,
    TagListResponse,
)
from .profile import ProfileResponse, ProfileUpdateRequest, UserStatsResponse
from .themes import (
    ThemeCustomization,
    ThemeListResponse,
    ThemeResponse,
    ThemeSettingsRequest,
    ThemeSettingsResponse,
)

__all__ = [
    "LoginRequest",
    "RegisterRequest",
    "TokenResponse",
    "UserResponse",
    "PasswordChangeRequest",
    "RefreshTokenRequest",
    "UsernameAvailabilityResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "UserStatsResponse",
    "PostCreateRequest",
    "PostUpdateRequest",
    "PostStatusRequest",
    "PostResponse",
    "PostListResponse",
    "DiscoverListResponse",
    "TagListResponse",
    "PageCreateRequest",
    "PageUpdateRequest",
    "PageResponse",
    "PageListResponse",
    "ThemeResponse",
    "ThemeListResponse",
    "ThemeCustomization",
    "ThemeSettingsRequest",
    "ThemeSettingsResponse",
    "MediaResponse",
    "MediaListResponse",
]
