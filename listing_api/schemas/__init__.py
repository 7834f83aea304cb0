"""
Pydantic schemas for request/response validation.
"""

from .filters import FilterCriteria, PRICE_UNBOUNDED

from .records import PropertyRecord, UserRecord, LogRecord, Identity

from .property import (
    PropertyBase,
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    ListingPageResponse,
    PropertyIdsRequest,
    BulkDeleteResponse,
    ImportResult
)

from .user import (
    UserResponse,
    FavoritesResponse,
    FavoritePropertiesResponse,
    LogEntryResponse
)

from .auth import LoginRequest, LoginResponse, PasswordResetRequest, MessageResponse

from .admin import (
    AdminActionRequest,
    AdminActionResponse,
    CreateUserAction,
    DeleteUserAction,
    ResetPasswordAction,
    ToggleUserStatusAction,
    ChangeUserRoleAction
)

from .media import (
    MediaRequest,
    MediaUploadResponse,
    MediaDeleteResponse,
    MediaDiscardRequest,
    MediaDiscardResponse
)

__all__ = [
    # Filters
    "FilterCriteria",
    "PRICE_UNBOUNDED",

    # Records
    "PropertyRecord",
    "UserRecord",
    "LogRecord",
    "Identity",

    # Property
    "PropertyBase",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyResponse",
    "ListingPageResponse",
    "PropertyIdsRequest",
    "BulkDeleteResponse",
    "ImportResult",

    # User
    "UserResponse",
    "FavoritesResponse",
    "FavoritePropertiesResponse",
    "LogEntryResponse",

    # Authentication
    "LoginRequest",
    "LoginResponse",
    "PasswordResetRequest",
    "MessageResponse",

    # Admin
    "AdminActionRequest",
    "AdminActionResponse",
    "CreateUserAction",
    "DeleteUserAction",
    "ResetPasswordAction",
    "ToggleUserStatusAction",
    "ChangeUserRoleAction",

    # Media
    "MediaRequest",
    "MediaUploadResponse",
    "MediaDeleteResponse",
    "MediaDiscardRequest",
    "MediaDiscardResponse",
]
