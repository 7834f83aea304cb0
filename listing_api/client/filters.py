"""
Search filter state kept in sync with the address bar.

``FilterState`` owns the current criteria. Changes made with ``set`` take
effect immediately without touching the URL; changes made with ``stage`` wait
for ``apply``, which writes every non-default field into the query string and
pushes it as one navigation. ``search`` mirrors the search bar and ``reset``
returns to the bare base path.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import parse_qs, urlencode, urlsplit
from pydantic import ValidationError as PydanticValidationError
from listing_api.schemas.filters import FilterCriteria
import logging

logger = logging.getLogger(__name__)

SEARCH_PATH = "/search"

# Criteria field -> query-string key, in serialization order
QUERY_KEYS = {
    "region": "region",
    "marketing_type": "marketing_type",
    "property_type": "type",
    "price_min": "price_min",
    "price_max": "price_max",
    "bedrooms_min": "bedrooms_min",
    "bathrooms_min": "bathrooms_min",
}

_DEFAULTS = FilterCriteria()

CriteriaListener = Callable[[FilterCriteria], Awaitable[Any]]
LocationListener = Callable[["Location"], None]


@dataclass(frozen=True)
class Location:
    """A navigable location: path plus raw query string."""

    path: str
    query: str = ""

    @property
    def url(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path

    @classmethod
    def parse(cls, url: str) -> "Location":
        parts = urlsplit(url)
        return cls(path=parts.path or "/", query=parts.query)


class Navigator:
    """
    In-page history. Every push is one observable navigation; nothing is
    reloaded.
    """

    def __init__(self, initial_url: str = "/"):
        self._history: List[Location] = [Location.parse(initial_url)]
        self._listeners: List[LocationListener] = []

    @property
    def current(self) -> Location:
        return self._history[-1]

    @property
    def history(self) -> List[Location]:
        return list(self._history)

    def push(self, url: str) -> Location:
        location = Location.parse(url)
        self._history.append(location)
        logger.debug(f"Navigated to {location.url}")
        for listener in list(self._listeners):
            listener(location)
        return location

    def subscribe(self, listener: LocationListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)


def _field_value(field: str, raw: str) -> Optional[Any]:
    """Validate one raw value in isolation; None when it does not parse."""
    try:
        return getattr(FilterCriteria.model_validate({field: raw}), field)
    except PydanticValidationError:
        logger.debug(f"Ignoring unparsable {field}={raw!r} in query string")
        return None


def parse_query_string(query: str) -> FilterCriteria:
    """
    Build criteria from a query string. Missing or unparsable values fall back
    to their defaults; unknown keys are ignored.
    """
    params = parse_qs(query.lstrip("?"), keep_blank_values=True)
    values: Dict[str, Any] = {}
    for field, key in QUERY_KEYS.items():
        if key not in params:
            continue
        value = _field_value(field, params[key][0])
        if value is not None:
            values[field] = value
    return FilterCriteria(**values)


def to_query_string(criteria: FilterCriteria) -> str:
    """Serialize every field that differs from its default."""
    pairs = []
    for field, key in QUERY_KEYS.items():
        value = getattr(criteria, field)
        if value == getattr(_DEFAULTS, field):
            continue
        pairs.append((key, value.value if hasattr(value, "value") else value))
    return urlencode(pairs)


class FilterState:
    """Owns the current search criteria and notifies subscribers of every change."""

    def __init__(self, navigator: Navigator, base_path: str = SEARCH_PATH):
        self.navigator = navigator
        self.base_path = base_path
        self.criteria = parse_query_string(navigator.current.query)
        self._pending: Dict[str, Any] = {}
        self._listeners: List[CriteriaListener] = []

    @property
    def pending(self) -> Dict[str, Any]:
        """Staged changes not yet applied."""
        return dict(self._pending)

    @property
    def is_filter_active(self) -> bool:
        return self.criteria.is_filter_active

    def subscribe(self, listener: CriteriaListener) -> Callable[[], None]:
        """Register an async listener called with the new criteria."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            await listener(self.criteria)

    def _push(self) -> None:
        query = to_query_string(self.criteria)
        self.navigator.push(f"{self.base_path}?{query}" if query else self.base_path)

    async def set(self, **changes: Any) -> FilterCriteria:
        """Change criteria immediately. The URL is left as it is."""
        self.criteria = self.criteria.with_changes(**changes)
        await self._notify()
        return self.criteria

    def stage(self, **changes: Any) -> None:
        """
        Hold changes until ``apply``.

        Raises:
            pydantic.ValidationError: If the staged values are invalid
        """
        merged = {**self._pending, **changes}
        self.criteria.with_changes(**merged)
        self._pending = merged

    def discard_pending(self) -> None:
        self._pending = {}

    async def apply(self) -> FilterCriteria:
        """Merge staged changes, write them to the URL and notify."""
        self.criteria = self.criteria.with_changes(**self._pending)
        self._pending = {}
        self._push()
        await self._notify()
        return self.criteria

    async def search(self, region: str, price_min: int = 0, price_max: Optional[int] = None) -> FilterCriteria:
        """Search-bar submit: replaces region and price range, keeps the rest."""
        changes = {"region": region, "price_min": price_min}
        changes["price_max"] = _DEFAULTS.price_max if price_max is None else price_max
        self.criteria = self.criteria.with_changes(**changes)
        self._pending = {}
        self._push()
        await self._notify()
        return self.criteria

    async def reset(self) -> FilterCriteria:
        """Restore every default and navigate to the bare base path."""
        self.criteria = FilterCriteria()
        self._pending = {}
        self.navigator.push(self.base_path)
        await self._notify()
        return self.criteria

    async def sync_from_location(self) -> FilterCriteria:
        """Re-read criteria from the navigator, e.g. after back navigation."""
        self.criteria = parse_query_string(self.navigator.current.query)
        self._pending = {}
        await self._notify()
        return self.criteria
