"""
Rate limiting using slowapi.

Limits are keyed on the client IP. Per-endpoint limits are applied with
``@limiter.limit(...)``; everything else falls under the default limit
through SlowAPIMiddleware.

Rate Limits:
- Login: 5 attempts per minute
- Registration: 3 attempts per minute
- Default: 100 requests per minute
"""

import ipaddress
import logging
import re

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

_IP_LIKE = re.compile(r"^[\d.:a-fA-F]+$")


def _public_ip(value: str) -> str | None:
    """Return *value* if it is a valid, publicly routable IP address."""
    value = value.strip()
    if not _IP_LIKE.match(value):
        return None
    try:
        addr = ipaddress.ip_address(value)
    except ValueError:
        return None
    # Private addresses in forwarding headers are trivially spoofed
    if addr.is_private or addr.is_loopback or addr.is_link_local:
        return None
    return value


def _get_real_ip(request: Request) -> str:
    """Client IP from proxy headers, falling back to the connection address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        candidate = _public_ip(forwarded.split(",")[0])
        if candidate:
            return candidate
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        candidate = _public_ip(real_ip)
        if candidate:
            return candidate
    return get_remote_address(request)


RATE_LIMITS = {
    "login": "5/minute",
    "register": "3/minute",
    "default": "100/minute",
}

if settings.rate_limit_storage_uri.startswith("memory://"):
    logger.info("Rate limiter using in-memory storage")

limiter = Limiter(
    key_func=_get_real_ip,
    storage_uri=settings.rate_limit_storage_uri,
    default_limits=[RATE_LIMITS["default"]],
)


def get_rate_limit(endpoint: str) -> str:
    """Limit string for *endpoint*, or the default limit."""
    return RATE_LIMITS.get(endpoint, RATE_LIMITS["default"])
