"""
FastAPI application for the property catalog.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from pathlib import Path
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError as PydanticValidationError
import logging

from listing_api.config import settings
from listing_api.database import create_tables, test_database_connection, close_db_connection
from listing_api.routers import auth_router, properties_router, favorites_router, admin_router, media_router
from listing_api.utils.exceptions import APIException
from listing_api.services.error_handler import ErrorHandlerService
from listing_api.middleware import RequestContextMiddleware

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

API_DESCRIPTION = """
Property catalog with search, favorites and an admin back office.

* **Search**: region, price range, bedrooms, bathrooms and type, 12 listings per page
* **Favorites**: per-user bookmarks written with a version check
* **Back office**: property management, CSV export and spreadsheet import
* **Admin actions**: create, delete, reset password, enable/disable and change role, each logged
* **Media**: image and short video uploads

Sign in through `/api/v1/auth/login` and send the token as `Authorization: Bearer <token>`.
"""

OPENAPI_TAGS = [
    {"name": "Authentication", "description": "Sign-in and password reset"},
    {"name": "Properties", "description": "Listing search and property management"},
    {"name": "Favorites", "description": "The signed-in user's record and favorites"},
    {"name": "Admin", "description": "Admin action dispatch, users and audit log"},
    {"name": "Media", "description": "Image and video uploads"},
    {"name": "Health", "description": "Service health"},
]

# Most specific first; Exception is the catch-all
EXCEPTION_HANDLERS = (
    (APIException, ErrorHandlerService.handle_api_exception),
    (RequestValidationError, ErrorHandlerService.handle_validation_error),
    (PydanticValidationError, ErrorHandlerService.handle_validation_error),
    (SQLAlchemyError, ErrorHandlerService.handle_database_error),
    (StarletteHTTPException, ErrorHandlerService.handle_http_exception),
    (Exception, ErrorHandlerService.handle_unexpected_error),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Starting {settings.app_name} v{settings.app_version} "
        f"({settings.environment}, {settings.gateway_backend} gateway)"
    )

    # Identity accounts live in the database whichever gateway backend is active
    if await test_database_connection():
        await create_tables()
    else:
        logger.error("Failed to connect to database on startup")

    yield

    logger.info("Shutting down application")
    await close_db_connection()


def register_exception_handlers(app: FastAPI) -> None:
    """Route every exception family to the structured error response."""
    for exception_class, handle in EXCEPTION_HANDLERS:

        async def handler(request: Request, exc: Exception, handle=handle):
            return handle(exc, request)

        app.add_exception_handler(exception_class, handler)


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=API_DESCRIPTION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Processing-Time", "Content-Disposition"],
)
app.add_middleware(
    RequestContextMiddleware,
    slow_request_threshold=2.0,
    enable_request_logging=settings.debug,
)

register_exception_handlers(app)

for router in (auth_router, properties_router, favorites_router, admin_router, media_router):
    app.include_router(router, prefix=settings.api_v1_prefix)

Path(settings.media_dir).mkdir(parents=True, exist_ok=True)
app.mount("/media-files", StaticFiles(directory=settings.media_dir), name="media-files")


@app.get("/", tags=["Health"])
async def root():
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
        "api_prefix": settings.api_v1_prefix,
        "documentation": {"swagger_ui": "/docs", "redoc": "/redoc"},
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness plus a database round trip; 503 when the database is unreachable."""
    if not await test_database_connection():
        raise HTTPException(status_code=503, detail="Database connection failed")

    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "gateway_backend": settings.gateway_backend,
        "database": "connected",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("listing_api.main:app", host=settings.host, port=settings.port, reload=settings.debug)
