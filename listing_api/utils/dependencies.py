"""
FastAPI dependency injection utilities.
Provides the shared gateway, identity provider and media store, the services
built on them, and the authentication dependencies that protect routes.
"""

from functools import lru_cache
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from listing_api.config import settings
from listing_api.database import get_session_factory
from listing_api.gateway import ListingGateway, build_gateway
from listing_api.schemas.records import Identity, UserRecord
from listing_api.services.admin import AdminDispatcher
from listing_api.services.favorites import FavoritesService, get_or_create_user
from listing_api.services.identity import IdentityProvider
from listing_api.services.listing import ListingService
from listing_api.services.media import MediaService
from listing_api.utils.exceptions import (
    DisabledAccountError,
    InsufficientPermissionsError,
    UnauthorizedError,
)


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


@lru_cache()
def _shared_gateway() -> ListingGateway:
    return build_gateway(settings)


@lru_cache()
def _shared_identity_provider() -> IdentityProvider:
    return IdentityProvider(get_session_factory())


@lru_cache()
def _shared_media_service() -> MediaService:
    return MediaService()


async def get_gateway() -> ListingGateway:
    """Process-wide data gateway chosen by ``GATEWAY_BACKEND``."""
    return _shared_gateway()


async def get_identity_provider() -> IdentityProvider:
    return _shared_identity_provider()


async def get_media_service() -> MediaService:
    return _shared_media_service()


async def get_listing_service(gateway: ListingGateway = Depends(get_gateway)) -> ListingService:
    return ListingService(gateway)


async def get_favorites_service(gateway: ListingGateway = Depends(get_gateway)) -> FavoritesService:
    return FavoritesService(gateway)


async def get_admin_dispatcher(
    gateway: ListingGateway = Depends(get_gateway),
    identity_provider: IdentityProvider = Depends(get_identity_provider)
) -> AdminDispatcher:
    return AdminDispatcher(gateway, identity_provider)


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity_provider: IdentityProvider = Depends(get_identity_provider)
) -> Identity:
    """
    Resolve the bearer token to an identity.

    Raises:
        UnauthorizedError: If no token was sent
        TokenExpiredError / InvalidTokenError: If the token is not usable
        DisabledAccountError: If the account is disabled
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")
    return await identity_provider.verify_access_token(credentials.credentials)


async def get_current_user_record(
    identity: Identity = Depends(get_current_identity),
    gateway: ListingGateway = Depends(get_gateway)
) -> UserRecord:
    """
    User record of the caller, created on first use.

    Raises:
        DisabledAccountError: If an admin disabled the user record
    """
    record = await get_or_create_user(gateway, identity)
    if record.disabled:
        raise DisabledAccountError()
    return record


async def require_back_office(
    current_user: UserRecord = Depends(get_current_user_record)
) -> UserRecord:
    """
    Caller must hold role admin or super.

    Raises:
        InsufficientPermissionsError: For any other role
    """
    if not current_user.is_back_office:
        raise InsufficientPermissionsError("access admin resources")
    return current_user
