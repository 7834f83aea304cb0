"""
Error response formatting and logging.

Every error leaves the API as
``{"error": {"code", "message", "timestamp", "request_id", "details"?}}``.
"""

from typing import Dict, Any, Optional, List
from datetime import datetime, timezone
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from pydantic import ValidationError as PydanticValidationError
from listing_api.utils.exceptions import APIException, GatewayError
import logging
import uuid

logger = logging.getLogger(__name__)

STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    503: "SERVICE_UNAVAILABLE",
}

CONSTRAINT_MESSAGES = (
    ("unique constraint", "Duplicate value for unique field"),
    ("foreign key constraint", "Referenced record does not exist"),
    ("not null constraint", "Required field cannot be empty"),
    ("check constraint", "Value does not meet validation requirements"),
)


class ErrorHandlerService:
    """
    Builds the JSON error body for the exception handlers registered in main.

    Handled API errors log at WARNING; gateway, database and unexpected
    failures log at ERROR.
    """

    @staticmethod
    def format_error_response(
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "code": error_code,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        if request_id:
            body["request_id"] = request_id
        if details:
            body["details"] = details
        return {"error": body}

    @staticmethod
    def handle_api_exception(exception: APIException, request: Optional[Request] = None) -> JSONResponse:
        """Render an APIException; its ``details`` pass through as given."""
        request_id = ErrorHandlerService._get_request_id(request)
        context = ErrorHandlerService._log_context(request, request_id, status_code=exception.status_code)

        if isinstance(exception, GatewayError):
            logger.error(f"Gateway Error [{request_id}]: {exception.operation} - {exception.detail}", extra=context)
        else:
            logger.warning(f"API Exception [{request_id}]: {exception.error_code} - {exception.detail}", extra=context)

        return ErrorHandlerService._respond(
            exception.status_code,
            exception.error_code,
            exception.detail,
            request_id,
            details=exception.details,
            headers=exception.headers
        )

    @staticmethod
    def handle_validation_error(
        exception: PydanticValidationError,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Request or model validation failure, one detail entry per field."""
        request_id = ErrorHandlerService._get_request_id(request)
        details = [
            {
                "field": " -> ".join(str(part) for part in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exception.errors()
        ]

        logger.warning(
            f"Validation Error [{request_id}]: {len(details)} field errors",
            extra=ErrorHandlerService._log_context(request, request_id, error_count=len(details))
        )

        return ErrorHandlerService._respond(
            422, "VALIDATION_ERROR", "Request validation failed", request_id, details=details
        )

    @staticmethod
    def handle_database_error(exception: SQLAlchemyError, request: Optional[Request] = None) -> JSONResponse:
        """
        Database errors that escaped the gateway.

        Integrity violations become 409 with a description of the constraint;
        anything else is a 500. The SQL itself only goes to the log.
        """
        request_id = ErrorHandlerService._get_request_id(request)

        if isinstance(exception, IntegrityError):
            status_code, error_code = 409, "INTEGRITY_ERROR"
            reason = ErrorHandlerService._describe_constraint(exception)
            message = f"Constraint violation: {reason}" if reason else "Data integrity constraint violation"
        else:
            status_code, error_code = 500, "DATABASE_ERROR"
            message = "Database operation failed"

        logger.error(
            f"Database Error [{request_id}]: {error_code} - {exception}",
            extra=ErrorHandlerService._log_context(request, request_id, exception_type=type(exception).__name__),
            exc_info=True
        )

        return ErrorHandlerService._respond(status_code, error_code, message, request_id)

    @staticmethod
    def handle_http_exception(exception: HTTPException, request: Optional[Request] = None) -> JSONResponse:
        """Plain HTTP exceptions from FastAPI or Starlette, routing 404s included."""
        request_id = ErrorHandlerService._get_request_id(request)

        logger.warning(
            f"HTTP Exception [{request_id}]: {exception.status_code} - {exception.detail}",
            extra=ErrorHandlerService._log_context(request, request_id, status_code=exception.status_code)
        )

        return ErrorHandlerService._respond(
            exception.status_code,
            STATUS_CODES.get(exception.status_code, f"HTTP_{exception.status_code}"),
            str(exception.detail),
            request_id,
            headers=getattr(exception, "headers", None)
        )

    @staticmethod
    def handle_unexpected_error(exception: Exception, request: Optional[Request] = None) -> JSONResponse:
        request_id = ErrorHandlerService._get_request_id(request)

        logger.error(
            f"Unexpected Error [{request_id}]: {type(exception).__name__} - {exception}",
            extra=ErrorHandlerService._log_context(request, request_id, exception_type=type(exception).__name__),
            exc_info=exception
        )

        return ErrorHandlerService._respond(
            500,
            "INTERNAL_SERVER_ERROR",
            "An unexpected error occurred. Please try again later.",
            request_id
        )

    @staticmethod
    def _respond(
        status_code: int,
        error_code: str,
        message: str,
        request_id: str,
        details: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=ErrorHandlerService.format_error_response(error_code, message, details, request_id),
            headers=headers
        )

    @staticmethod
    def _log_context(request: Optional[Request], request_id: str, **extra: Any) -> Dict[str, Any]:
        return {"request_id": request_id, "path": request.url.path if request else None, **extra}

    @staticmethod
    def _get_request_id(request: Optional[Request]) -> str:
        """Reuse the id assigned by the request middleware, or make one."""
        request_id = getattr(request.state, "request_id", None) if request is not None else None
        return request_id or str(uuid.uuid4())[:8]

    @staticmethod
    def _describe_constraint(exception: IntegrityError) -> Optional[str]:
        error_msg = str(exception.orig).lower()
        for marker, message in CONSTRAINT_MESSAGES:
            if marker in error_msg:
                return message
        return None


def _error_example(code: str, message: str) -> Dict[str, Any]:
    return {
        "content": {
            "application/json": {
                "example": {
                    "error": {
                        "code": code,
                        "message": message,
                        "timestamp": "2024-01-01T00:00:00Z",
                        "request_id": "abc12345"
                    }
                }
            }
        }
    }


# Error response schemas for route documentation
ERROR_RESPONSES = {
    401: {"description": "Unauthorized", **_error_example("UNAUTHORIZED", "Authentication required")},
    403: {"description": "Forbidden", **_error_example("FORBIDDEN", "Access forbidden")},
    404: {"description": "Not Found", **_error_example("NOT_FOUND", "Property not found with ID: abc")},
    409: {"description": "Conflict", **_error_example("CONFLICT", "Favorites were modified elsewhere")},
    422: {"description": "Validation Error", **_error_example("VALIDATION_ERROR", "Request validation failed")},
    503: {"description": "Service Unavailable", **_error_example("SERVICE_UNAVAILABLE", "Data store failed")},
}
