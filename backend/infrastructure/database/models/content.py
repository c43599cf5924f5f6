"""
Content database models: blog posts and custom site pages.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class PostStatus(str, Enum):
    """Post status enumeration."""

    DRAFT = "draft"
    PUBLISHED = "published"


class Post(Base, TimestampMixin):
    """A blog post written in Markdown."""

    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Author
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Content
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    excerpt: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content_html: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    # Metadata
    status: Mapped[str] = mapped_column(
        String(20),
        default=PostStatus.DRAFT.value,
        nullable=False,
        index=True,
    )
    word_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    read_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # minutes
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Set the first time the post is published and never cleared
    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    author = relationship("User", lazy="raise")

    __table_args__ = (
        UniqueConstraint("user_id", "slug", name="uq_posts_user_slug"),
        Index("ix_posts_status_published_at", "status", "published_at"),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, title={self.title[:30]}, status={self.status})>"

    @property
    def is_published(self) -> bool:
        return self.status == PostStatus.PUBLISHED.value


class Page(Base, TimestampMixin):
    """A custom page on a user's site (about, projects, contact, ...)."""

    __tablename__ = "pages"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    slug: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content_html: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    nav_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "slug", name="uq_pages_user_slug"),
    )

    def __repr__(self) -> str:
        return f"<Page(id={self.id}, slug={self.slug}, published={self.published})>"
