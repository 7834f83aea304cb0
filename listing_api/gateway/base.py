"""
Data gateway interface shared by every storage backend.

A gateway answers bounded listing queries and performs the handful of record
mutations the application needs. Backends differ in how they paginate: the
relational backend hands out integer offsets, the document backend hands out
opaque continuation tokens. Callers treat the cursor as opaque either way.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from listing_api.schemas.records import PropertyRecord, UserRecord, LogRecord

Cursor = Union[int, str]

# Property fields that may appear in a listing predicate
FILTERABLE_FIELDS = frozenset({
    "region",
    "price",
    "bedrooms",
    "bathrooms",
    "marketing_type",
    "property_type",
})

# User fields an admin may change through update_user
MUTABLE_USER_FIELDS = frozenset({"role", "disabled", "display_name", "photo_url"})


class PredicateOp(str, Enum):
    EQ = "eq"
    CONTAINS = "contains"
    GTE = "gte"
    LTE = "lte"


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


@dataclass(frozen=True)
class Predicate:
    """One filter condition on a property field."""

    field: str
    op: PredicateOp
    value: Any

    def __post_init__(self):
        if self.field not in FILTERABLE_FIELDS:
            raise ValueError(f"Field '{self.field}' cannot be filtered on")

    def matches(self, record: PropertyRecord) -> bool:
        """Evaluate the predicate against a record held in memory."""
        actual = record.value_of(self.field)
        expected = _plain(self.value)
        if self.op is PredicateOp.EQ:
            if isinstance(actual, str) and isinstance(expected, str):
                return actual.upper() == expected.upper()
            return actual == expected
        if self.op is PredicateOp.CONTAINS:
            return str(expected).upper() in str(actual).upper()
        if self.op is PredicateOp.GTE:
            return actual >= expected
        if self.op is PredicateOp.LTE:
            return actual <= expected
        raise ValueError(f"Unsupported predicate operator: {self.op}")


@dataclass(frozen=True)
class ListingQuery:
    """A bounded, ordered listing query."""

    predicates: Tuple[Predicate, ...] = ()
    order_by: str = "listed_on"
    descending: bool = True
    page_size: int = 12

    @property
    def fields(self) -> frozenset:
        """Fields constrained by at least one predicate."""
        return frozenset(p.field for p in self.predicates)

    def find(self, field: str, op: Optional[PredicateOp] = None) -> Optional[Predicate]:
        """First predicate on ``field`` (and ``op``, when given)."""
        for predicate in self.predicates:
            if predicate.field == field and (op is None or predicate.op is op):
                return predicate
        return None


@dataclass
class Page:
    """One page of listing results and the cursor that resumes after it."""

    items: List[PropertyRecord]
    next_cursor: Optional[Cursor]
    page_size: int = 12

    @property
    def has_more(self) -> bool:
        """A full page means another page may follow."""
        return self.next_cursor is not None and len(self.items) >= self.page_size


class ListingGateway(ABC):
    """
    Storage backend used by the listing loader, the favorites store, the admin
    dispatcher and the HTTP API. Backend failures surface as ``GatewayError``.
    """

    #: "offset" or "token"
    pagination: str = "offset"

    # Listings

    @abstractmethod
    async def fetch_page(self, query: ListingQuery, cursor: Optional[Cursor] = None) -> Page:
        """Fetch the page of ``query`` that starts at ``cursor`` (first page when None)."""

    @abstractmethod
    def parse_cursor(self, raw: str) -> Cursor:
        """Turn a cursor received over the wire back into this backend's cursor."""

    def format_cursor(self, cursor: Optional[Cursor]) -> Optional[str]:
        """Render a cursor for the wire."""
        return None if cursor is None else str(cursor)

    @abstractmethod
    async def get_property(self, property_id: str) -> Optional[PropertyRecord]:
        ...

    @abstractmethod
    async def get_properties(self, property_ids: Sequence[str]) -> List[PropertyRecord]:
        """Fetch properties in the requested order, silently skipping missing ids."""

    @abstractmethod
    async def list_properties(self) -> List[PropertyRecord]:
        """All properties, newest first, for the back office."""

    @abstractmethod
    async def create_property(self, data: Dict[str, Any]) -> PropertyRecord:
        ...

    @abstractmethod
    async def update_property(self, property_id: str, changes: Dict[str, Any]) -> Optional[PropertyRecord]:
        """Apply ``changes``; None when the property does not exist."""

    @abstractmethod
    async def delete_properties(self, property_ids: Sequence[str]) -> int:
        """Delete the given properties and return how many existed."""

    # Users

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    async def create_user(self, record: UserRecord) -> UserRecord:
        """Insert a user record; DuplicateResourceError when the id is taken."""

    @abstractmethod
    async def list_users(self) -> List[UserRecord]:
        ...

    @abstractmethod
    async def update_user(self, user_id: str, changes: Dict[str, Any]) -> Optional[UserRecord]:
        """Change admin-managed fields; None when the user does not exist."""

    @abstractmethod
    async def delete_user(self, user_id: str) -> bool:
        ...

    @abstractmethod
    async def update_favorites(
        self,
        user_id: str,
        favorites: Sequence[str],
        expected_version: int
    ) -> UserRecord:
        """
        Replace the favorites list if the stored version still equals
        ``expected_version``.

        Raises:
            FavoritesConflictError: The stored version moved on; carries the current record
            UserNotFoundError: No such user
        """

    # Audit log

    @abstractmethod
    async def append_log(self, action: str, performed_by: str, target: str) -> LogRecord:
        ...

    @abstractmethod
    async def list_logs(self) -> List[LogRecord]:
        """Log entries, newest first."""


def check_user_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Reject attempts to change fields admins do not manage."""
    unknown = set(changes) - MUTABLE_USER_FIELDS
    if unknown:
        raise ValueError(f"Cannot update user fields: {', '.join(sorted(unknown))}")
    return changes
