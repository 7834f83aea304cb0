"""
Endpoints for the signed-in user: profile and favorites.
"""

from fastapi import APIRouter, Depends, Path, Query
from typing import Optional

from listing_api.schemas.property import PropertyResponse
from listing_api.schemas.records import UserRecord
from listing_api.schemas.user import FavoritePropertiesResponse, FavoritesResponse, UserResponse
from listing_api.services.error_handler import ERROR_RESPONSES
from listing_api.services.favorites import FavoritesService
from listing_api.utils.dependencies import get_current_user_record, get_favorites_service

router = APIRouter(prefix="/me", tags=["Favorites"])

USER_ERRORS = {code: ERROR_RESPONSES[code] for code in (401, 403)}


@router.get(
    "",
    response_model=UserResponse,
    summary="Current user",
    description="The caller's user record, created on first use",
    responses=USER_ERRORS
)
async def get_me(current_user: UserRecord = Depends(get_current_user_record)) -> UserResponse:
    return UserResponse.model_validate(current_user.model_dump())


@router.get(
    "/favorites",
    response_model=FavoritePropertiesResponse,
    summary="Favorite properties",
    description="Favorited properties in the order they were added. Ids whose property was deleted are listed in missing.",
    responses=USER_ERRORS
)
async def list_favorites(
    current_user: UserRecord = Depends(get_current_user_record),
    favorites_service: FavoritesService = Depends(get_favorites_service)
) -> FavoritePropertiesResponse:
    records, missing = await favorites_service.list_properties(current_user)
    return FavoritePropertiesResponse(
        properties=[PropertyResponse.from_record(record) for record in records],
        missing=missing,
    )


@router.post(
    "/favorites/{property_id}",
    response_model=FavoritesResponse,
    summary="Add favorite",
    description="Conditional on expected_version when given; a stale version yields 409 with the current favorites.",
    responses={404: ERROR_RESPONSES[404], 409: ERROR_RESPONSES[409], **USER_ERRORS}
)
async def add_favorite(
    property_id: str = Path(..., description="Property id"),
    expected_version: Optional[int] = Query(None, ge=0, description="favorites_version last seen by the client"),
    current_user: UserRecord = Depends(get_current_user_record),
    favorites_service: FavoritesService = Depends(get_favorites_service)
) -> FavoritesResponse:
    record = await favorites_service.add(current_user, property_id, expected_version)
    return FavoritesResponse(favorites=record.favorites, favorites_version=record.favorites_version)


@router.delete(
    "/favorites/{property_id}",
    response_model=FavoritesResponse,
    summary="Remove favorite",
    responses={409: ERROR_RESPONSES[409], **USER_ERRORS}
)
async def remove_favorite(
    property_id: str = Path(..., description="Property id"),
    expected_version: Optional[int] = Query(None, ge=0, description="favorites_version last seen by the client"),
    current_user: UserRecord = Depends(get_current_user_record),
    favorites_service: FavoritesService = Depends(get_favorites_service)
) -> FavoritesResponse:
    record = await favorites_service.remove(current_user, property_id, expected_version)
    return FavoritesResponse(favorites=record.favorites, favorites_version=record.favorites_version)
