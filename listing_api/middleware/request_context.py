"""
Request context middleware.
Tags every request with an id, times it, and logs slow or failing requests.
"""

from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging
import time
import uuid

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Assigns ``request.state.request_id`` (honouring an incoming X-Request-ID)
    and adds X-Request-ID and X-Processing-Time to every response.
    """

    def __init__(
        self,
        app: ASGIApp,
        slow_request_threshold: float = 1.0,  # seconds
        enable_request_logging: bool = False
    ):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold
        self.enable_request_logging = enable_request_logging

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start_time = time.perf_counter()

        if self.enable_request_logging:
            logger.debug(f"Request [{request_id}]: {request.method} {request.url.path}")

        try:
            response = await call_next(request)
        except Exception as exc:
            processing_time = time.perf_counter() - start_time
            logger.error(
                f"Request error [{request_id}]: {type(exc).__name__} - {exc} "
                f"(processing_time: {processing_time:.3f}s)",
                extra={
                    "request_id": request_id,
                    "path": request.url.path,
                    "method": request.method,
                },
                exc_info=True
            )
            raise

        processing_time = time.perf_counter() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time"] = f"{processing_time:.3f}"

        if processing_time > self.slow_request_threshold:
            logger.warning(
                f"Slow request [{request_id}]: {request.method} {request.url.path} "
                f"took {processing_time:.3f}s (status {response.status_code})"
            )
        elif self.enable_request_logging:
            logger.debug(
                f"Response [{request_id}]: {response.status_code} in {processing_time:.3f}s"
            )

        return response
