"""
Assembles complete site pages from a theme.

Rendering runs in two passes: the page template first, then the layout
with the page output as ``content``. The result then has its links
rewritten for the request's routing mode.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

from infrastructure.config.settings import settings
from services.site_routing import (
    NavigationContext,
    navigation_html,
    post_link,
    rewrite_links,
)
from services.template_engine import render_template
from services.theme_loader import (
    TemplateNotFoundError,
    ThemeLoader,
    ThemeManifest,
    get_theme_loader,
)

logger = logging.getLogger(__name__)

_UNSAFE_CSS_VALUE = re.compile(r"[;{}<>]")
_CSS_IDENT = re.compile(r"^[A-Za-z0-9_-]+$")


def template_key_for(page_type: str) -> str:
    """Manifest template key for a page type (``post-single`` renders ``post``)."""
    return "post" if page_type == "post-single" else page_type


def select_template(manifest: ThemeManifest, page_type: str) -> str:
    """
    Choose which of the theme's templates renders *page_type*.

    Falls back to ``custom`` and then ``about`` for pages the theme has no
    dedicated template for.

    Raises:
        TemplateNotFoundError: If none of the candidates exist.
    """
    for name in (template_key_for(page_type), "custom", "about"):
        if manifest.has_template(name):
            return name
    raise TemplateNotFoundError(
        f"Template not found for page '{page_type}' in theme '{manifest.id}'"
    )


def resolve_customization(manifest: ThemeManifest, saved: Optional[dict]) -> dict:
    """Manifest defaults overlaid with the user's saved values."""
    saved = saved if isinstance(saved, dict) else {}
    colors = {key: option.value for key, option in manifest.customization.colors.items()}
    fonts = {key: option.value for key, option in manifest.customization.fonts.items()}
    options = {key: option.value for key, option in manifest.customization.options.items()}
    for defaults, group in ((colors, "colors"), (fonts, "fonts"), (options, "options")):
        values = saved.get(group)
        if isinstance(values, dict):
            defaults.update(values)
        elif values is not None:
            logger.warning("Ignoring malformed %s customization: %r", group, values)
    return {"colors": colors, "fonts": fonts, "options": options}


def customization_css(customization: dict) -> str:
    """
    ``:root`` block exposing colors as ``--ms-{id}`` and fonts as
    ``--ms-font-{id}``. Values that could break out of the declaration
    are dropped.
    """
    lines = [":root {"]
    for prefix, group in (("--ms-", "colors"), ("--ms-font-", "fonts")):
        for key, value in (customization.get(group) or {}).items():
            value = str(value).strip()
            if not value or not _CSS_IDENT.match(str(key)) or _UNSAFE_CSS_VALUE.search(value):
                continue
            lines.append(f"  {prefix}{key}: {value};")
    lines.append("}")
    return "\n".join(lines) + "\n"


def _debug_comment(theme_id: str, page_type: str, nav: NavigationContext) -> str:
    mode = "subdomain" if nav.is_subdomain else "path"
    text = f"theme={theme_id} page={page_type} username={nav.username} routing={mode}"
    return f"<!-- minispace-debug {text.replace('--', '- -')} -->\n"


class ThemeRenderer:
    """Renders a user's site pages with a theme."""

    def __init__(self, loader: ThemeLoader | None = None, debug: bool | None = None):
        self.loader = loader or get_theme_loader()
        self.debug = settings.debug if debug is None else debug

    def render_page(
        self,
        theme_id: str,
        page_type: str,
        context: dict[str, Any],
        nav: NavigationContext,
        custom_pages: Optional[list[dict]] = None,
        customization: Optional[dict] = None,
        user_css: str = "",
    ) -> str:
        """
        Render one page of a site to HTML.

        Args:
            theme_id: Installed theme to render with
            page_type: ``home``, ``posts``, ``post-single``, ``about`` or a custom slug
            context: Template data (``site``, ``posts``, ``post``, ``page``, ...)
            nav: Routing context used for navigation and link rewriting
            custom_pages: Published custom pages for the navigation bar
            customization: Saved theme settings (colors, fonts, options)
            user_css: Already-sanitized user CSS

        Raises:
            ThemeNotFoundError: Unknown theme.
            TemplateNotFoundError: The theme cannot render this page.
            TemplateSyntaxError: A template is malformed.
        """
        manifest = self.loader.get_theme(theme_id)
        template_name = select_template(manifest, page_type)
        page_source = self.loader.load_template(theme_id, template_name)
        layout_source = self.loader.load_template(theme_id, "layout")

        resolved = resolve_customization(manifest, customization)
        navigation = navigation_html(nav, custom_pages)

        page_context = {
            **context,
            "navigation": navigation,
            "pageType": page_type,
            "themeOptions": resolved["options"],
        }
        content = render_template(page_source, page_context)

        layout_context = {
            **page_context,
            "content": content,
            "themeCSS": self.loader.load_css(theme_id),
            "customCSS": customization_css(resolved),
            "userCSS": user_css or "",
            "currentYear": datetime.now(timezone.utc).year,
        }
        html = render_template(layout_source, layout_context)
        html = rewrite_links(html, nav)

        if self.debug:
            html = _debug_comment(theme_id, page_type, nav) + html

        logger.debug(
            "Rendered %s page with theme %s for %s", page_type, theme_id, nav.username
        )
        return html


# ---------------------------------------------------------------------------
# Theme previews
# ---------------------------------------------------------------------------

PREVIEW_USERNAME = "janedoe"

_PREVIEW_POSTS = [
    {
        "title": "Great software is composed; not written",
        "slug": "great-software-composed",
        "excerpt": "A collection of thoughts from the past decade.",
        "publishedAt": "2024-12-03T00:00:00+00:00",
        "readTime": 3,
        "tags": ["engineering", "craft"],
        "content": (
            "<p>Over the past decade, I've come to believe that great software is not "
            "simply written, but composed. Like music, like essays, like architecture.</p>"
            "<h2>What does it mean to compose?</h2>"
            "<ul><li>To reuse motifs, patterns, and abstractions.</li>"
            "<li>To layer small ideas into something greater.</li>"
            "<li>To edit, revise, and shape the structure with care.</li></ul>"
            "<p><i>What are you composing today?</i></p>"
        ),
    },
    {
        "title": "Three definitions of success",
        "slug": "three-definitions-success",
        "excerpt": "How to build your own hedonic treadmill.",
        "publishedAt": "2020-12-21T00:00:00+00:00",
        "readTime": 2,
        "tags": ["life"],
        "content": (
            "<p>Success can be measured in many ways. Here are three definitions that "
            "have shaped my approach to work and life.</p>"
        ),
    },
    {
        "title": "2020 in review",
        "slug": "2020-in-review",
        "excerpt": "Exploring my boundaries.",
        "publishedAt": "2020-12-16T00:00:00+00:00",
        "readTime": 4,
        "tags": ["review"],
        "content": "<p>2020 was a year of personal boundaries and learning to let go.</p>",
    },
    {
        "title": "Enhancing book notes with metadata",
        "slug": "book-notes-metadata",
        "excerpt": "You can read, you can code. So why not?",
        "publishedAt": "2020-11-09T00:00:00+00:00",
        "readTime": 2,
        "tags": ["books"],
        "content": "<p>Adding metadata to book notes helps me spot patterns over time.</p>",
    },
]

_PREVIEW_SITE = {
    "title": "Jane Doe",
    "description": (
        "Software engineer writing about frontend infrastructure, monorepos, "
        "and developer experience."
    ),
    "username": PREVIEW_USERNAME,
    "socialLinks": (
        '<a href="https://twitter.com/janedoe" target="_blank" rel="noopener">Twitter</a> · '
        '<a href="https://github.com/janedoe" target="_blank" rel="noopener">GitHub</a>'
    ),
    "aboutText": (
        "Hi, I'm Jane Doe.<br><br>I started this blog to have a place on the web "
        "that feels personal, honest, and a little bit whimsical."
    ),
}


def preview_context(nav: NavigationContext, page_type: str = "home") -> dict[str, Any]:
    """Demo content used to preview a theme before choosing it."""
    posts = [{**post, "url": post_link(post["slug"], nav)} for post in _PREVIEW_POSTS]
    context: dict[str, Any] = {
        "site": dict(_PREVIEW_SITE),
        "posts": posts,
        "customPages": [],
    }
    if page_type == "post-single":
        context["post"] = posts[0]
    elif page_type not in ("home", "posts", "about"):
        context["page"] = {
            "title": page_type.replace("-", " ").title(),
            "description": "Things I have built.",
            "content": "<p>A few side projects I keep coming back to.</p>",
        }
    return context


def render_preview(
    theme_id: str,
    page: str = "home",
    renderer: ThemeRenderer | None = None,
) -> str:
    """
    Render *page* of *theme_id* with demo content.

    Raises:
        ThemeNotFoundError: Unknown theme.
    """
    renderer = renderer or ThemeRenderer()
    page_type = "post-single" if page in ("post", "post-single") else page
    nav = NavigationContext(
        username=PREVIEW_USERNAME,
        current_page="post" if page_type == "post-single" else page_type,
        is_subdomain=True,
    )
    return renderer.render_page(theme_id, page_type, preview_context(nav, page_type), nav)
