"""
Shared API utility functions.
"""

import re
from uuid import UUID

import bleach
import markdown

_MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]
_ALLOWED_TAGS = [
    "p", "br", "hr", "strong", "em", "b", "i", "del", "sup", "sub",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "blockquote", "code", "pre", "a", "img",
    "table", "thead", "tbody", "tr", "th", "td",
]
_ALLOWED_ATTRIBUTES = {
    "a": ["href", "title"],
    "img": ["src", "alt", "title"],
    "code": ["class"],
}
_ALLOWED_PROTOCOLS = ["http", "https", "mailto"]
_MARKDOWN_LINK = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_MARKDOWN_SYNTAX = re.compile(r"[#>*_`~]+")


def escape_like(value: str) -> str:
    """Escape LIKE wildcards for safe use in SQL LIKE/ILIKE patterns."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def is_uuid(value: str) -> bool:
    try:
        UUID(value)
    except (TypeError, ValueError):
        return False
    return True


def slugify(text: str) -> str:
    """Convert text to URL-safe slug."""
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_-]+", "-", text)
    text = re.sub(r"^-+|-+$", "", text)
    return text[:200]


def count_words(content: str | None) -> int:
    return len(content.split()) if content else 0


def calculate_read_time(content: str | None) -> int:
    """Calculate estimated read time in minutes (200 wpm)."""
    return max(1, round(count_words(content) / 200))


def render_markdown(content: str | None) -> str | None:
    """Markdown to HTML, with any markup outside the allow-list stripped."""
    if not content:
        return None
    html = markdown.markdown(content, extensions=_MARKDOWN_EXTENSIONS)
    return bleach.clean(
        html,
        tags=_ALLOWED_TAGS,
        attributes=_ALLOWED_ATTRIBUTES,
        protocols=_ALLOWED_PROTOCOLS,
        strip=True,
    )


def make_excerpt(content: str | None, length: int = 200) -> str | None:
    """Plain-text teaser built from the start of a markdown body."""
    if not content:
        return None
    text = _MARKDOWN_LINK.sub(r"\1", content)
    text = _MARKDOWN_SYNTAX.sub(" ", text)
    text = " ".join(text.split())
    if len(text) <= length:
        return text or None
    cut = text[:length].rsplit(" ", 1)[0]
    return f"{cut}..."
