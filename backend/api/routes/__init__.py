"""API Routes."""

from fastapi import APIRouter

from .auth import router as auth_router
from .discover import router as discover_router
from .health import router as health_router
from .media import router as media_router
from .pages import router as pages_router
from .posts import router as posts_router
from .profile import router as profile_router
from .sites import router as sites_router
from .themes import router as themes_router

# Create main API router
api_router = APIRouter()

# Include route modules
api_router.include_router(health_router)
api_router.include_router(auth_router)
api_router.include_router(profile_router)
api_router.include_router(posts_router)
api_router.include_router(discover_router)
api_router.include_router(pages_router)
api_router.include_router(themes_router)
api_router.include_router(media_router)

__all__ = ["api_router", "sites_router"]
