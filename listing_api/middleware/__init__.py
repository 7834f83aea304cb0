"""
Middleware package for request tagging and timing.
"""

from .request_context import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]
