"""
Subdomain routing for user sites.

``jane.minispace.dev/posts`` is served by the ``/{username}/posts`` route:
the request path is rewritten to ``/jane/posts`` before routing, and the
username is recorded in ``request.state.site_host_username`` so the site
renderer can build subdomain-style links.
"""

import logging
from typing import Iterable, Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import RedirectResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from services.site_routing import analyze_path, correct_path, is_passthrough_path, parse_host

logger = logging.getLogger(__name__)

HEADER_REWRITTEN = "X-Minispace-Rewritten-From-Subdomain"
HEADER_ORIGINAL_HOST = "X-Minispace-Original-Host"
HEADER_USERNAME = "X-Minispace-Username"


class TenantMiddleware:
    """Pure ASGI middleware mapping user subdomains onto path-based routes."""

    def __init__(
        self,
        app: ASGIApp,
        site_domain: Optional[str] = None,
        dev_domains: Optional[Iterable[str]] = None,
    ):
        self.app = app
        self.site_domain = site_domain
        self.dev_domains = list(dev_domains) if dev_domains is not None else None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        host = Headers(scope=scope).get("host")
        host_info = parse_host(host, self.site_domain, self.dev_domains)
        path = scope.get("path") or "/"

        if not host_info.is_subdomain or is_passthrough_path(path):
            await self.app(scope, receive, send)
            return

        username = host_info.username
        analysis = analyze_path(path, host_info)
        corrected = correct_path(analysis)
        if corrected is not None:
            query = scope.get("query_string", b"").decode("latin-1")
            location = f"{corrected}?{query}" if query else corrected
            logger.debug("Redirecting %s%s to %s", host_info.hostname, path, location)
            response = RedirectResponse(location, status_code=307)
            await response(scope, receive, send)
            return

        rewritten = f"/{username}{path.rstrip('/')}"
        state = scope.setdefault("state", {})
        state["site_host_username"] = username
        state["rewritten_from_subdomain"] = True
        scope = dict(scope)
        scope["path"] = rewritten
        scope["raw_path"] = rewritten.encode("utf-8")

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers[HEADER_REWRITTEN] = "true"
                headers[HEADER_ORIGINAL_HOST] = host or ""
                headers[HEADER_USERNAME] = username
            await send(message)

        await self.app(scope, receive, send_with_headers)
