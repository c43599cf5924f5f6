"""
SQLAlchemy database models.
"""

from .base import Base, TimestampMixin
from .content import Page, Post, PostStatus
from .media import Media
from .theme import ThemeSettings
from .user import User, UserStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "UserStatus",
    "Post",
    "PostStatus",
    "Page",
    "ThemeSettings",
    "Media",
]
