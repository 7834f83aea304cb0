"""
Utility modules for the Property Catalog API.
"""

from .auth import (
    create_access_token,
    create_password_reset_token,
    verify_token,
    TokenPayload
)

from .exceptions import (
    APIException,
    ValidationError,
    NotFoundError,
    UnauthorizedError,
    ForbiddenError,
    ConflictError,
    BadRequestError,
    ServiceUnavailableError,
    InvalidCredentialsError,
    TokenExpiredError,
    InvalidTokenError,
    DisabledAccountError,
    InsufficientPermissionsError,
    FavoritesConflictError,
    GatewayError
)

from .formatting import format_rupiah, format_listing_date, parse_listing_date

# Dependencies are imported directly where needed to avoid circular imports

__all__ = [
    # Auth utilities
    "create_access_token",
    "create_password_reset_token",
    "verify_token",
    "TokenPayload",

    # Exceptions
    "APIException",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "ConflictError",
    "BadRequestError",
    "ServiceUnavailableError",
    "InvalidCredentialsError",
    "TokenExpiredError",
    "InvalidTokenError",
    "DisabledAccountError",
    "InsufficientPermissionsError",
    "FavoritesConflictError",
    "GatewayError",

    # Formatting
    "format_rupiah",
    "format_listing_date",
    "parse_listing_date",
]
