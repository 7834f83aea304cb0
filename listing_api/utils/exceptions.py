"""
Exception hierarchy for the Property Catalog API.

Each class fixes an HTTP status and a stable ``error_code``; ``details`` is
an optional list of dicts that the error handler passes through to the
response body unchanged.
"""

from typing import Any, Dict, List, Optional, TYPE_CHECKING
from fastapi import HTTPException, status

if TYPE_CHECKING:
    from listing_api.schemas.records import UserRecord


class APIException(HTTPException):
    """Base class for errors that map onto a structured API response."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        detail: str,
        details: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        super().__init__(status_code=self.http_status, detail=detail, headers=headers)
        self.details = list(details or [])


class ValidationError(APIException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "VALIDATION_ERROR"

    def __init__(self, detail: str, field_errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(detail, details=field_errors)


class BadRequestError(APIException):
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "BAD_REQUEST"


class UnauthorizedError(APIException):
    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(APIException):
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"

    def __init__(self, detail: str = "Access forbidden"):
        super().__init__(detail)


class NotFoundError(APIException):
    http_status = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        suffix = f" with ID: {resource_id}" if resource_id else ""
        super().__init__(f"{resource} not found{suffix}")


class ConflictError(APIException):
    http_status = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"


class ServiceUnavailableError(APIException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "SERVICE_UNAVAILABLE"

    def __init__(self, detail: str = "Service temporarily unavailable"):
        super().__init__(detail)


# Identity
class InvalidCredentialsError(UnauthorizedError):
    def __init__(self):
        super().__init__("Invalid email or password")


class TokenExpiredError(UnauthorizedError):
    def __init__(self, detail: str = "Token has expired"):
        super().__init__(detail)


class InvalidTokenError(UnauthorizedError):
    def __init__(self, detail: str = "Invalid token"):
        super().__init__(detail)


class DisabledAccountError(ForbiddenError):
    def __init__(self):
        super().__init__("User account is disabled")


class InsufficientPermissionsError(ForbiddenError):
    def __init__(self, action: str):
        super().__init__(f"Insufficient permissions to {action}")


# Catalog records
class PropertyNotFoundError(NotFoundError):
    def __init__(self, property_id: str):
        super().__init__("Property", property_id)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class DuplicateResourceError(ConflictError):
    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' already exists")


class FavoritesConflictError(ConflictError):
    """
    The stored favorites moved on since the caller read them.

    ``current`` is the stored user record; the response details carry its
    favorites and version so a client can reconcile without another read.
    """

    def __init__(self, current: "UserRecord"):
        super().__init__(
            "Favorites were modified elsewhere; reload and try again",
            details=[{
                "favorites": list(current.favorites),
                "favorites_version": current.favorites_version,
            }]
        )
        self.current = current


class GatewayError(ServiceUnavailableError):
    """A storage backend could not complete ``operation``."""

    def __init__(self, operation: str, reason: Optional[str] = None):
        message = f"Data store failed to {operation}"
        super().__init__(f"{message}: {reason}" if reason else message)
        self.operation = operation


# Media
class FileUploadError(BadRequestError):
    def __init__(self, detail: str):
        super().__init__(f"File upload error: {detail}")


class UnsupportedFileTypeError(BadRequestError):
    def __init__(self, file_type: str, supported_types: List[str]):
        super().__init__(
            f"Unsupported file type '{file_type}'. Supported types: {', '.join(supported_types)}"
        )


class FileSizeExceededError(BadRequestError):
    def __init__(self, size: int, max_size: int):
        super().__init__(f"File size {size} bytes exceeds maximum allowed size {max_size} bytes")
