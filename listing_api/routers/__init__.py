"""
API route handlers for the Property Catalog API.
"""

from .auth import router as auth_router
from .properties import router as properties_router
from .favorites import router as favorites_router
from .admin import router as admin_router
from .media import router as media_router

__all__ = ["auth_router", "properties_router", "favorites_router", "admin_router", "media_router"]
