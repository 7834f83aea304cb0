"""
Data gateway package. ``build_gateway`` picks the backend named in settings.
"""

from sqlalchemy.ext.asyncio import async_sessionmaker
from listing_api.config import Settings
from .base import (
    Cursor,
    FILTERABLE_FIELDS,
    ListingGateway,
    ListingQuery,
    Page,
    Predicate,
    PredicateOp,
)
from .sql import SqlGateway
from .memory import MemoryGateway
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def build_gateway(settings: Settings, session_factory: Optional[async_sessionmaker] = None) -> ListingGateway:
    """
    Create the gateway configured by ``settings.gateway_backend``.

    Args:
        settings: Application settings
        session_factory: Session factory for the relational backend; the
            process-wide factory is used when omitted

    Returns:
        A ready ListingGateway
    """
    if settings.gateway_backend == "memory":
        logger.info("Using in-memory listing gateway")
        return MemoryGateway()

    if session_factory is None:
        from listing_api.database import get_session_factory
        session_factory = get_session_factory()
    logger.info("Using SQL listing gateway")
    return SqlGateway(session_factory)


__all__ = [
    "Cursor",
    "FILTERABLE_FIELDS",
    "ListingGateway",
    "ListingQuery",
    "Page",
    "Predicate",
    "PredicateOp",
    "SqlGateway",
    "MemoryGateway",
    "build_gateway",
]
