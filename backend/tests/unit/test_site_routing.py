"""
Tests for host analysis, navigation and link rewriting.
"""

import pytest

from services.site_routing import (
    HostInfo,
    NavigationContext,
    analyze_path,
    build_navigation_context,
    correct_path,
    current_page_for,
    is_passthrough_path,
    is_reserved_username,
    navigation_html,
    parse_host,
    post_link,
    rewrite_links,
    site_link,
)

DOMAIN = "minispace.dev"
DEV = ["localhost", "127.0.0.1"]

MAIN = HostInfo(hostname=DOMAIN)
JANE = HostInfo(hostname=f"jane.{DOMAIN}", username="jane")


class TestParseHost:
    """Tests for parse_host."""

    def test_user_subdomain(self):
        info = parse_host(f"jane.{DOMAIN}", DOMAIN, DEV)
        assert info.username == "jane"
        assert info.is_subdomain

    def test_port_and_case_ignored(self):
        assert parse_host("Jane.Minispace.dev:443", DOMAIN, DEV).username == "jane"

    def test_dev_domain_subdomain(self):
        assert parse_host("jane.localhost:3000", DOMAIN, DEV).username == "jane"

    @pytest.mark.parametrize(
        "host",
        [
            DOMAIN,
            f"www.{DOMAIN}",
            f"api.{DOMAIN}",
            f"dashboard.{DOMAIN}",
            f"a.b.{DOMAIN}",
            "localhost:8000",
            "example.com",
            "",
            None,
        ],
    )
    def test_main_domain(self, host):
        assert not parse_host(host, DOMAIN, DEV).is_subdomain


class TestAnalyzePath:
    """Tests for analyze_path and correct_path."""

    def test_path_based_post(self):
        analysis = analyze_path("/jane/post/hello-world", MAIN)
        assert analysis.username == "jane"
        assert not analysis.is_subdomain
        assert analysis.segments == ["jane", "post", "hello-world"]
        assert analysis.page_type == "post-single"

    def test_path_based_home(self):
        analysis = analyze_path("/jane", MAIN)
        assert analysis.username == "jane"
        assert analysis.page_type == "home"

    def test_path_based_custom_page(self):
        assert analyze_path("/jane/projects", MAIN).page_type == "projects"

    @pytest.mark.parametrize("path", ["/api/posts", "/about", "/discover", "/favicon.png", "/"])
    def test_system_and_static_paths_have_no_user(self, path):
        assert analyze_path(path, MAIN).username is None

    def test_subdomain_path(self):
        analysis = analyze_path("/posts", JANE)
        assert analysis.username == "jane"
        assert analysis.is_subdomain
        assert analysis.normalized_path == "/posts"
        assert analysis.page_type == "posts"

    def test_subdomain_root(self):
        assert analyze_path("/", JANE).page_type == "home"

    def test_subdomain_single_post(self):
        assert analyze_path("/post/hello", JANE).page_type == "post-single"

    def test_subdomain_with_username_prefix_is_normalized(self):
        analysis = analyze_path("/jane/about", JANE)
        assert analysis.normalized_path == "/about"
        assert analysis.page_type == "about"

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/jane/posts", "/posts"),
            ("/jane/post/hello", "/post/hello"),
            ("/jane", "/"),
            ("/jane/", "/"),
        ],
    )
    def test_correction_on_subdomain(self, path, expected):
        assert correct_path(analyze_path(path, JANE)) == expected

    def test_no_correction_needed(self):
        assert correct_path(analyze_path("/posts", JANE)) is None
        assert correct_path(analyze_path("/janet", JANE)) is None
        assert correct_path(analyze_path("/jane/posts", MAIN)) is None


class TestPredicates:
    def test_reserved_usernames(self):
        for name in ("api", "www", "admin", "posts", "Discover"):
            assert is_reserved_username(name)
        assert not is_reserved_username("jane")

    def test_passthrough_paths(self):
        assert is_passthrough_path("/api/posts")
        assert is_passthrough_path("/uploads/media/a.png")
        assert is_passthrough_path("/openapi.json")
        assert not is_passthrough_path("/apiary")
        assert not is_passthrough_path("/posts")


class TestNavigation:
    """Tests for navigation context and HTML."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/jane", "home"),
            ("/jane/", "home"),
            ("/jane/posts", "posts"),
            ("/jane/post/hello", "post"),
            ("/jane/projects", "projects"),
        ],
    )
    def test_current_page(self, path, expected):
        assert current_page_for(path, "jane") == expected

    def test_build_context(self):
        nav = build_navigation_context("jane", "/jane/about", is_subdomain=True)
        assert nav == NavigationContext(username="jane", current_page="about", is_subdomain=True)

    def test_subdomain_links(self):
        nav = NavigationContext(username="jane", current_page="posts", is_subdomain=True)
        assert navigation_html(nav) == (
            '<a href="/" class="nav-link">Home</a>'
            '<a href="/posts" class="nav-link active">Writing</a>'
            '<a href="/about" class="nav-link">About</a>'
        )

    def test_path_based_links(self):
        nav = NavigationContext(username="jane", current_page="home", is_subdomain=False)
        assert navigation_html(nav) == (
            '<a href="/jane" class="nav-link active">Home</a>'
            '<a href="/jane/posts" class="nav-link">Writing</a>'
            '<a href="/jane/about" class="nav-link">About</a>'
        )

    def test_custom_pages_appended_once(self):
        nav = NavigationContext(username="jane", current_page="projects")
        pages = [
            {"slug": "projects", "title": "Projects"},
            {"slug": "about", "title": "About me"},
            {"slug": "home", "title": "Home again"},
        ]
        result = navigation_html(nav, pages)
        assert result.endswith('<a href="/projects" class="nav-link active">Projects</a>')
        assert result.count("About") == 1
        assert "Home again" not in result

    def test_labels_escaped(self):
        nav = NavigationContext(username="jane")
        result = navigation_html(nav, [{"slug": "x", "title": "<script>"}])
        assert "&lt;script&gt;" in result
        assert "<script>" not in result

    def test_post_and_site_links(self):
        sub = NavigationContext(username="jane", is_subdomain=True)
        path = NavigationContext(username="jane", is_subdomain=False)
        assert post_link("hello", sub) == "/post/hello"
        assert post_link("hello", path) == "/jane/post/hello"
        assert site_link("/", path) == "/jane"
        assert site_link("projects", path) == "/jane/projects"
        assert site_link("projects", sub) == "/projects"


class TestRewriteLinks:
    """Tests for rewrite_links."""

    def test_subdomain_strips_username(self):
        nav = NavigationContext(username="jane", is_subdomain=True)
        markup = '<a href="/jane">h</a><a href="/jane/posts">p</a><a href="/janet">t</a>'
        assert rewrite_links(markup, nav) == (
            '<a href="/">h</a><a href="/posts">p</a><a href="/janet">t</a>'
        )

    def test_subdomain_collapses_double_slash(self):
        nav = NavigationContext(username="jane", is_subdomain=True)
        assert rewrite_links('<a href="//posts">', nav) == '<a href="/posts">'

    def test_path_mode_adds_username(self):
        nav = NavigationContext(username="jane", is_subdomain=False)
        markup = '<a href="/">h</a><a href="/posts">p</a><a href="/post/x">x</a>'
        assert rewrite_links(markup, nav) == (
            '<a href="/jane">h</a><a href="/jane/posts">p</a><a href="/jane/post/x">x</a>'
        )

    @pytest.mark.parametrize(
        "href",
        [
            "/jane/posts",
            "/jane",
            "/api/health",
            "/uploads/a.png",
            "/static/x.css",
            "/_next/chunk.js",
            "https://example.com/x",
            "#top",
        ],
    )
    def test_path_mode_leaves_platform_and_external_links(self, href):
        nav = NavigationContext(username="jane", is_subdomain=False)
        markup = f'<a href="{href}">x</a>'
        assert rewrite_links(markup, nav) == markup
