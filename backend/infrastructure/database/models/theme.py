"""
Per-user theme selection and customization.
"""

from typing import Optional
from uuid import uuid4

from sqlalchemy import ForeignKey, JSON, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class ThemeSettings(Base, TimestampMixin):
    """The theme a user's site is rendered with, plus their overrides."""

    __tablename__ = "theme_settings"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    theme_id: Mapped[str] = mapped_column(String(100), nullable=False)
    theme_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    theme_category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Customization values keyed by the manifest's customization option ids
    settings: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    # Stored already sanitized and scoped
    custom_css: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ThemeSettings(user_id={self.user_id}, theme_id={self.theme_id})>"
