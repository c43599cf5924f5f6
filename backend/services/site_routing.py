"""
Multi-tenant site routing.

A user's site is reachable two ways:

- subdomain routing: ``jane.minispace.dev/posts``
- path routing:      ``minispace.dev/jane/posts``

This module works out which one a request uses, which user and page it
addresses, and rewrites links in rendered HTML so they stay inside the
same routing mode.
"""

import html
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from infrastructure.config.settings import settings

# Subdomains that belong to the platform itself, never to a user
SPECIAL_SUBDOMAINS = frozenset({"www", "api", "admin", "app", "dashboard"})

# First path segments on the main domain that are not usernames
SYSTEM_PATHS = frozenset(
    {
        "signin",
        "signup",
        "login",
        "logout",
        "register",
        "forgot-password",
        "api",
        "docs",
        "redoc",
        "openapi.json",
        "terms",
        "privacy",
        "contact",
        "about",
        "discover",
        "favicon",
        "favicon.ico",
        "robots.txt",
        "_next",
        "static",
        "uploads",
        "themes",
        "health",
    }
)

STATIC_FILE_EXTENSIONS = (".ico", ".png", ".jpg", ".jpeg", ".gif", ".svg", ".css", ".js", ".txt")

RESERVED_USERNAMES = SYSTEM_PATHS | SPECIAL_SUBDOMAINS | frozenset(
    {"posts", "post", "settings", "account", "root", "support", "help", "blog", "minispace"}
)

# Paths that are served by the platform even on a user's subdomain
PASSTHROUGH_PREFIXES = ("/api", "/uploads", "/docs", "/redoc", "/openapi.json")

DEFAULT_NAV_LINKS = (
    ("/", "Home"),
    ("/posts", "Writing"),
    ("/about", "About"),
)

_NO_PREFIX_SECTIONS = ("_", "api/", "static/", "uploads/")
_ROOT_HREF = re.compile(r'href="/"')
_SECTION_HREF = re.compile(r'href="/([^/"][^"]*)"')
_DOUBLE_SLASH_HREF = re.compile(r'href="//')
_LEADING_SLASHES_HREF = re.compile(r'href="/{2,}')


def is_reserved_username(username: str) -> bool:
    return username.lower() in RESERVED_USERNAMES


def is_static_file(segment: str) -> bool:
    return segment.lower().endswith(STATIC_FILE_EXTENSIONS)


def is_passthrough_path(path: str) -> bool:
    """True for platform paths that are never rewritten to a user's site."""
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PASSTHROUGH_PREFIXES)


# ---------------------------------------------------------------------------
# Host and path analysis
# ---------------------------------------------------------------------------


@dataclass
class HostInfo:
    hostname: str
    username: Optional[str] = None

    @property
    def is_subdomain(self) -> bool:
        return self.username is not None


@dataclass
class PathAnalysis:
    """Everything the router needs to know about one request path."""

    username: Optional[str]
    is_subdomain: bool
    original_path: str
    normalized_path: str
    segments: list[str] = field(default_factory=list)
    page_type: str = "home"


def strip_port(host: str) -> str:
    host = host.strip().lower()
    if host.startswith("["):
        # IPv6 literal, e.g. [::1]:8000
        return host.split("]", 1)[0] + "]"
    return host.rsplit(":", 1)[0] if ":" in host else host


def parse_host(
    host: str | None,
    site_domain: str | None = None,
    dev_domains: Iterable[str] | None = None,
) -> HostInfo:
    """
    Decide whether a Host header addresses a user subdomain.

    ``jane.minispace.dev`` and ``jane.localhost:3000`` resolve to username
    ``jane``. The bare domains, special subdomains such as ``www``, and
    anything deeper than one label are treated as the main domain.
    """
    hostname = strip_port(host or "")
    site_domain = (site_domain or settings.site_domain).lower()
    bases = [site_domain, *(dev_domains if dev_domains is not None else settings.dev_domains_list)]

    for base in bases:
        suffix = "." + base.lower()
        if not hostname.endswith(suffix):
            continue
        label = hostname[: -len(suffix)]
        if not label or "." in label or label in SPECIAL_SUBDOMAINS:
            break
        return HostInfo(hostname=hostname, username=label)

    return HostInfo(hostname=hostname)


def _has_prefix(path: str, username: str) -> bool:
    return path == f"/{username}" or path.startswith(f"/{username}/")


def analyze_path(path: str, host_info: HostInfo) -> PathAnalysis:
    """Detect the username and page type addressed by *path*."""
    path = path or "/"
    segments = [s for s in path.split("/") if s]

    username = host_info.username
    if not host_info.is_subdomain and segments:
        first = segments[0]
        if first.lower() not in SYSTEM_PATHS and not is_static_file(first):
            username = first

    normalized = path
    if host_info.is_subdomain and username and _has_prefix(path, username):
        normalized = path[len(username) + 1:] or "/"

    segments = [s for s in normalized.split("/") if s]

    # Index of the first segment after the username
    offset = 0 if host_info.is_subdomain else 1
    page_type = segments[offset] if len(segments) > offset else "home"
    if page_type == "post" and len(segments) > offset + 1:
        page_type = "post-single"

    return PathAnalysis(
        username=username,
        is_subdomain=host_info.is_subdomain,
        original_path=path,
        normalized_path=normalized,
        segments=segments,
        page_type=page_type,
    )


def correct_path(analysis: PathAnalysis) -> Optional[str]:
    """
    Path a subdomain request should be redirected to, if any.

    ``jane.minispace.dev/jane/posts`` redirects to ``/posts``.
    """
    if not analysis.is_subdomain or not analysis.username:
        return None
    if _has_prefix(analysis.original_path, analysis.username):
        return analysis.original_path[len(analysis.username) + 1:] or "/"
    return None


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


@dataclass
class NavigationContext:
    username: str
    current_page: str = "home"
    is_subdomain: bool = True


def current_page_for(path: str, username: str) -> str:
    """First path segment after the username; ``home`` for the site root."""
    clean = path.strip("/")
    if clean == username:
        return "home"
    if clean.startswith(username + "/"):
        clean = clean[len(username) + 1:]
    return clean.split("/")[0] or "home"


def build_navigation_context(username: str, path: str, is_subdomain: bool) -> NavigationContext:
    return NavigationContext(
        username=username,
        current_page=current_page_for(path, username),
        is_subdomain=is_subdomain,
    )


def navigation_html(
    context: NavigationContext,
    custom_pages: Iterable[dict] | None = None,
    links: Iterable[tuple[str, str]] | None = None,
) -> str:
    """
    Render the site navigation as a run of ``<a class="nav-link">`` tags.

    Args:
        context: Routing context of the page being rendered
        custom_pages: Published custom pages, each with ``slug`` and ``title``
        links: Override for the default Home / Writing / About links
    """
    nav = list(links or DEFAULT_NAV_LINKS)
    existing = {"home" if href == "/" else href.lstrip("/") for href, _ in nav}

    for page in custom_pages or ():
        slug = page.get("slug") or ""
        if not slug or slug == "home" or slug in existing:
            continue
        existing.add(slug)
        nav.append((f"/{slug}", page.get("title") or slug.capitalize()))

    current = (context.current_page or "home").lower()
    parts = []
    for href, label in nav:
        page_name = "home" if href == "/" else href.lstrip("/").split("/")[0].lower()
        css_class = "nav-link active" if page_name == current else "nav-link"
        target = href if context.is_subdomain else f"/{context.username}{href}"
        if not context.is_subdomain and href == "/":
            target = f"/{context.username}"
        parts.append(
            f'<a href="{html.escape(target)}" class="{css_class}">{html.escape(label)}</a>'
        )
    return "".join(parts)


def post_link(slug: str, context: NavigationContext) -> str:
    if context.is_subdomain:
        return f"/post/{slug}"
    return f"/{context.username}/post/{slug}"


def site_link(path: str, context: NavigationContext) -> str:
    """Link to a page of the site in the context's routing mode."""
    path = "/" + path.lstrip("/")
    if context.is_subdomain:
        return path
    return f"/{context.username}" if path == "/" else f"/{context.username}{path}"


# ---------------------------------------------------------------------------
# Link rewriting
# ---------------------------------------------------------------------------


def _rewrite_for_subdomain(markup: str, username: str) -> str:
    prefixed = re.compile(r'href="/%s(/[^"]*)?"' % re.escape(username))

    def strip_prefix(match: re.Match) -> str:
        rest = match.group(1)
        if not rest or rest == "/":
            return 'href="/"'
        return f'href="{rest}"'

    markup = prefixed.sub(strip_prefix, markup)
    return _DOUBLE_SLASH_HREF.sub('href="/', markup)


def _rewrite_for_path(markup: str, username: str) -> str:
    markup = _ROOT_HREF.sub(f'href="/{username}"', markup)

    def add_prefix(match: re.Match) -> str:
        section = match.group(1)
        if (
            section == username
            or section.startswith(username + "/")
            or "://" in section
            or section.startswith(_NO_PREFIX_SECTIONS)
        ):
            return match.group(0)
        return f'href="/{username}/{section}"'

    markup = _SECTION_HREF.sub(add_prefix, markup)
    return _LEADING_SLASHES_HREF.sub('href="/', markup)


def rewrite_links(markup: str, context: NavigationContext) -> str:
    """
    Rewrite internal hrefs to match the context's routing mode.

    On a subdomain, ``/jane/posts`` becomes ``/posts``. On a path-based
    site, ``/posts`` becomes ``/jane/posts``. External links and platform
    paths (``/api/``, ``/uploads/``, ...) are left alone.
    """
    if context.is_subdomain:
        return _rewrite_for_subdomain(markup, context.username)
    return _rewrite_for_path(markup, context.username)
