"""
Paginated listing loader.

Turns criteria into a gateway query, keeps the materialized result list and
the cursor of the next page, and exposes loading, loading-more, exhausted and
error states. Every request is numbered; a response whose number is not the
latest issued is dropped, so a slow answer to a superseded query can never
overwrite newer results.
"""

from typing import Callable, List, Optional
from listing_api.gateway.base import Cursor, ListingGateway, ListingQuery, Page
from listing_api.schemas.filters import FilterCriteria
from listing_api.schemas.records import PropertyRecord
from listing_api.services.listing import build_listing_query
from listing_api.utils.exceptions import GatewayError
import logging

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load properties. Please try again."

StateListener = Callable[["ListingLoader"], None]


class ListingLoader:
    """Loads pages of listings for the current criteria."""

    def __init__(
        self,
        gateway: ListingGateway,
        page_size: Optional[int] = None,
        region_match: Optional[str] = None
    ):
        self.gateway = gateway
        self.page_size = page_size
        self.region_match = region_match

        self.items: List[PropertyRecord] = []
        self.is_loading = False
        self.is_loading_more = False
        self.has_more = False
        self.error: Optional[str] = None

        self.criteria: Optional[FilterCriteria] = None
        self.query: Optional[ListingQuery] = None
        self._cursor: Optional[Cursor] = None
        self._sequence = 0
        self._listeners: List[StateListener] = []

    @property
    def is_exhausted(self) -> bool:
        """A load finished and no further page exists."""
        return self.query is not None and not (self.is_loading or self.is_loading_more or self.has_more)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def bind(self, filter_state) -> Callable[[], None]:
        """Restart loading whenever ``filter_state`` changes."""
        return filter_state.subscribe(self.load)

    def dismiss_error(self) -> None:
        self.error = None
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _issue(self) -> int:
        self._sequence += 1
        return self._sequence

    def _is_current(self, sequence: int) -> bool:
        if sequence != self._sequence:
            logger.debug(f"Discarding stale listing response #{sequence} (latest #{self._sequence})")
            return False
        return True

    async def _fetch(self, query: ListingQuery, cursor: Optional[Cursor]) -> Page:
        return await self.gateway.fetch_page(query, cursor)

    async def load(self, criteria: FilterCriteria) -> bool:
        """
        Discard all pages and load the first page for ``criteria``.

        Returns:
            True when this call's results were applied
        """
        sequence = self._issue()
        self.criteria = criteria
        self.query = build_listing_query(criteria, self.page_size, self.region_match)
        self.items = []
        self._cursor = None
        self.has_more = False
        self.error = None
        self.is_loading = True
        self.is_loading_more = False
        self._notify()

        try:
            page = await self._fetch(self.query, None)
        except GatewayError as e:
            if not self._is_current(sequence):
                return False
            logger.error(f"Listing load failed: {e.detail}")
            self.error = LOAD_ERROR_MESSAGE
            self.is_loading = False
            self._notify()
            return False

        if not self._is_current(sequence):
            return False

        self.items = list(page.items)
        self._cursor = page.next_cursor
        self.has_more = page.has_more
        self.is_loading = False
        self._notify()
        return True

    async def load_more(self) -> bool:
        """
        Append the next page. A no-op when nothing was loaded yet, when the
        results are exhausted, or while any load is in flight.

        Returns:
            True when a page was appended
        """
        if self.query is None or not self.has_more or self.is_loading or self.is_loading_more:
            return False

        sequence = self._issue()
        self.is_loading_more = True
        self.error = None
        self._notify()

        try:
            page = await self._fetch(self.query, self._cursor)
        except GatewayError as e:
            if not self._is_current(sequence):
                return False
            # Loaded pages stay; the user may retry
            logger.error(f"Loading more listings failed: {e.detail}")
            self.error = LOAD_ERROR_MESSAGE
            self.is_loading_more = False
            self._notify()
            return False

        if not self._is_current(sequence):
            return False

        self.items.extend(page.items)
        self._cursor = page.next_cursor
        self.has_more = page.has_more
        self.is_loading_more = False
        self._notify()
        return True
