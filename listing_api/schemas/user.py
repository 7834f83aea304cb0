"""
Pydantic schemas for user and favorites responses.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from listing_api.models.user import UserRole
from listing_api.schemas.property import PropertyResponse


class UserResponse(BaseModel):
    """User record as shown to its owner and to admins."""

    model_config = {"from_attributes": True}

    id: str = Field(..., description="Subject id from the identity provider")
    email: str = Field(..., description="User email address", example="user@example.com")
    display_name: str = Field(..., description="Display name", example="user")
    photo_url: Optional[str] = Field(None, description="Profile photo URL")
    role: UserRole = Field(..., description="User role", example="user")
    disabled: bool = Field(False, description="Whether the account is disabled")
    favorites: List[str] = Field(default_factory=list, description="Bookmarked property ids")
    favorites_version: int = Field(0, description="Version to quote on conditional favorites writes")
    created_at: Optional[datetime] = None


class FavoritesResponse(BaseModel):
    """Favorites list after a mutation."""

    favorites: List[str]
    favorites_version: int


class FavoritePropertiesResponse(BaseModel):
    """Favorited properties that still exist; ids with no property are skipped."""

    properties: List[PropertyResponse]
    missing: List[str] = Field(default_factory=list, description="Favorited ids no longer in the catalog")


class LogEntryResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    action: str
    performed_by: str
    target: str
    timestamp: datetime
