"""
Service layer for business logic implementation.
Contains the listing, favorites, admin, identity, media and export services.
"""

from .listing import ListingService, build_listing_query
from .favorites import FavoritesService
from .admin import AdminDispatcher
from .identity import IdentityProvider
from .media import MediaService
from .error_handler import ErrorHandlerService

__all__ = [
    "ListingService",
    "build_listing_query",
    "FavoritesService",
    "AdminDispatcher",
    "IdentityProvider",
    "MediaService",
    "ErrorHandlerService"
]
