"""
Template data for a user's public site.

Database rows are turned into the plain dicts the theme templates read
(``site``, ``posts``, ``post``, ``page``, ``customPages``).
"""

import html
from typing import Any, Iterable, Optional

from infrastructure.database.models import Page, Post, User
from services.site_routing import NavigationContext, post_link, site_link

SOCIAL_LINK_SEPARATOR = " · "


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def social_links_html(links: Optional[dict]) -> str:
    """Render ``{label: url}`` as escaped anchors; non-http(s) URLs are dropped."""
    anchors = []
    for label, url in (links or {}).items():
        if not isinstance(url, str) or not url.lower().startswith(("http://", "https://")):
            continue
        anchors.append(
            f'<a href="{html.escape(url)}" target="_blank" rel="noopener">'
            f"{html.escape(str(label).capitalize())}</a>"
        )
    return SOCIAL_LINK_SEPARATOR.join(anchors)


def about_text_html(bio: Optional[str]) -> str:
    if not bio:
        return ""
    return html.escape(bio.strip()).replace("\n", "<br>")


def post_context(post: Post, nav: NavigationContext) -> dict[str, Any]:
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "excerpt": post.excerpt,
        "content": post.content_html or "",
        "tags": list(post.tags or []),
        "readTime": post.read_time,
        "wordCount": post.word_count,
        "views": post.views,
        "publishedAt": _iso(post.published_at),
        "url": post_link(post.slug, nav),
    }


def page_context(page: Page, nav: NavigationContext) -> dict[str, Any]:
    return {
        "title": page.title,
        "slug": page.slug,
        "description": page.description,
        "content": page.content_html or "",
        "url": site_link(page.slug, nav),
    }


def site_info(user: User) -> dict[str, Any]:
    return {
        "title": user.site_title,
        "description": user.bio or "",
        "username": user.username,
        "photoUrl": user.photo_url,
        "socialLinks": social_links_html(user.social_links),
        "aboutText": about_text_html(user.bio),
    }


def build_site_context(
    user: User,
    posts: Iterable[Post],
    pages: Iterable[Page],
    nav: NavigationContext,
) -> dict[str, Any]:
    """
    Base context shared by every page of a site.

    Args:
        user: Site owner
        posts: Published posts, newest first
        pages: Published custom pages in navigation order
        nav: Routing context of the request
    """
    return {
        "site": site_info(user),
        "posts": [post_context(post, nav) for post in posts],
        "customPages": [page_context(page, nav) for page in pages],
    }
