"""
Listing service: turns search criteria into gateway queries and wraps the
property record operations used by the catalog and the back office.
"""

from listing_api.config import settings
from listing_api.gateway.base import ListingGateway, ListingQuery, Page, Predicate, PredicateOp
from listing_api.schemas.filters import FilterCriteria
from listing_api.schemas.property import PropertyCreate, PropertyUpdate
from listing_api.schemas.records import PropertyRecord
from listing_api.utils.exceptions import PropertyNotFoundError, ValidationError
from typing import List, Optional, Sequence
import logging

logger = logging.getLogger(__name__)


def build_listing_query(
    criteria: FilterCriteria,
    page_size: Optional[int] = None,
    region_match: Optional[str] = None
) -> ListingQuery:
    """
    Derive the gateway query for the given criteria.

    Only criteria that differ from their defaults contribute a predicate, so
    the default criteria produce an unfiltered query. Results are always
    ordered by listing date, newest first.

    Args:
        criteria: Current search criteria
        page_size: Page size; the configured listing page size when omitted
        region_match: "partial" (substring) or "exact"; configured mode when omitted

    Returns:
        ListingQuery ready for ``ListingGateway.fetch_page``
    """
    page_size = page_size or settings.listing_page_size
    region_match = region_match or settings.region_match

    predicates = []
    if criteria.region:
        op = PredicateOp.EQ if region_match == "exact" else PredicateOp.CONTAINS
        predicates.append(Predicate("region", op, criteria.region))
    if criteria.price_min > 0:
        predicates.append(Predicate("price", PredicateOp.GTE, criteria.price_min))
    if criteria.has_price_max:
        predicates.append(Predicate("price", PredicateOp.LTE, criteria.price_max))
    if criteria.bedrooms_min > 0:
        predicates.append(Predicate("bedrooms", PredicateOp.GTE, criteria.bedrooms_min))
    if criteria.bathrooms_min > 0:
        predicates.append(Predicate("bathrooms", PredicateOp.GTE, criteria.bathrooms_min))
    if criteria.marketing_type is not None:
        predicates.append(Predicate("marketing_type", PredicateOp.EQ, criteria.marketing_type))
    if criteria.property_type is not None:
        predicates.append(Predicate("property_type", PredicateOp.EQ, criteria.property_type))

    return ListingQuery(
        predicates=tuple(predicates),
        order_by="listed_on",
        descending=True,
        page_size=page_size,
    )


class ListingService:
    """
    Property operations on top of a ListingGateway. Missing records raise
    PropertyNotFoundError; gateway failures propagate as GatewayError.
    """

    def __init__(self, gateway: ListingGateway):
        self.gateway = gateway

    async def search(self, criteria: FilterCriteria, cursor: Optional[str] = None) -> Page:
        """
        Fetch one page of listings matching ``criteria``.

        Args:
            criteria: Search criteria
            cursor: Wire cursor from a previous page, or None for the first page

        Returns:
            Page of matching properties

        Raises:
            ValidationError: If the cursor is malformed
        """
        query = build_listing_query(criteria)
        parsed = self.gateway.parse_cursor(cursor) if cursor else None
        page = await self.gateway.fetch_page(query, parsed)
        logger.debug(
            f"Listing search returned {len(page.items)} items "
            f"({len(query.predicates)} predicates, has_more={page.has_more})"
        )
        return page

    async def get_property(self, property_id: str) -> PropertyRecord:
        record = await self.gateway.get_property(property_id)
        if record is None:
            raise PropertyNotFoundError(property_id)
        return record

    async def list_properties(self) -> List[PropertyRecord]:
        return await self.gateway.list_properties()

    async def create_property(self, property_data: PropertyCreate) -> PropertyRecord:
        """Create a property; the listing date defaults to today."""
        record = await self.gateway.create_property(property_data.to_store_data())
        logger.info(f"Property created: {record.id} ({record.region}, {record.property_type.value})")
        return record

    async def update_property(self, property_id: str, property_data: PropertyUpdate) -> PropertyRecord:
        """
        Apply a partial update.

        Raises:
            ValidationError: If no fields were provided
            PropertyNotFoundError: If the property does not exist
        """
        changes = property_data.to_store_changes()
        if not changes:
            raise ValidationError("No fields provided for update")
        record = await self.gateway.update_property(property_id, changes)
        if record is None:
            raise PropertyNotFoundError(property_id)
        logger.info(f"Property updated: {property_id}")
        return record

    async def delete_property(self, property_id: str) -> None:
        # Favorites and media referencing the property are left untouched
        deleted = await self.gateway.delete_properties([property_id])
        if not deleted:
            raise PropertyNotFoundError(property_id)
        logger.info(f"Property deleted: {property_id}")

    async def bulk_delete(self, property_ids: Sequence[str]) -> int:
        deleted = await self.gateway.delete_properties(list(dict.fromkeys(property_ids)))
        logger.info(f"Bulk delete removed {deleted} of {len(property_ids)} properties")
        return deleted
