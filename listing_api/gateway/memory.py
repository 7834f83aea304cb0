"""
In-process document gateway.

Records live in dictionaries guarded by an asyncio lock. Listing pages use
keyset pagination: the continuation token is an opaque url-safe base64 string
encoding the sort key of the last record on the page, and the next page starts
strictly after that key. Inserts between page loads therefore never shift
later pages the way offsets do.
"""

from datetime import date, datetime, timezone
from listing_api.database import generate_id
from listing_api.gateway.base import (
    Cursor,
    ListingGateway,
    ListingQuery,
    Page,
    check_user_changes,
)
from listing_api.schemas.records import PropertyRecord, UserRecord, LogRecord
from listing_api.utils.exceptions import (
    DuplicateResourceError,
    FavoritesConflictError,
    UserNotFoundError,
    ValidationError,
)
from typing import Any, Dict, List, Optional, Sequence, Tuple
import asyncio
import base64
import json
import logging

logger = logging.getLogger(__name__)


def encode_token(key: Tuple[Any, str]) -> str:
    """Encode a (sort value, id) key as a continuation token."""
    value, record_id = key
    if isinstance(value, date):
        value = value.isoformat()
    raw = json.dumps([value, record_id], separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_token(token: str) -> Tuple[Any, str]:
    """Decode a continuation token; ValueError when it is malformed."""
    try:
        padded = token + "=" * (-len(token) % 4)
        value, record_id = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (ValueError, TypeError, UnicodeError) as e:
        raise ValueError(f"Malformed continuation token: {e}") from e
    if not isinstance(record_id, str):
        raise ValueError("Malformed continuation token: id must be a string")
    # Listings are keyed by listing date, carried as an ISO string
    if not isinstance(value, str):
        raise ValueError("Malformed continuation token: sort value must be an ISO date")
    try:
        date.fromisoformat(value)
    except ValueError as e:
        raise ValueError(f"Malformed continuation token: {e}") from e
    return value, record_id


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryGateway(ListingGateway):
    """Gateway keeping every collection in memory for the life of the process."""

    pagination = "token"

    def __init__(self):
        self._properties: Dict[str, PropertyRecord] = {}
        self._users: Dict[str, UserRecord] = {}
        self._logs: List[LogRecord] = []
        self._lock = asyncio.Lock()

    @staticmethod
    def _sort_key(record: PropertyRecord, order_by: str) -> Tuple[Any, str]:
        value = record.value_of(order_by)
        if isinstance(value, date):
            value = value.isoformat()
        return value, record.id

    # Listings

    def parse_cursor(self, raw: str) -> Cursor:
        try:
            decode_token(raw)
        except ValueError as e:
            raise ValidationError("Invalid cursor", [{"field": "cursor", "message": str(e)}])
        return raw

    async def fetch_page(self, query: ListingQuery, cursor: Optional[Cursor] = None) -> Page:
        after = None
        if cursor is not None:
            try:
                after = tuple(decode_token(str(cursor)))
            except ValueError as e:
                raise ValidationError("Invalid cursor", [{"field": "cursor", "message": str(e)}])

        matching = [
            record for record in self._properties.values()
            if all(predicate.matches(record) for predicate in query.predicates)
        ]
        matching.sort(key=lambda r: self._sort_key(r, query.order_by), reverse=query.descending)

        if after is not None:
            if query.descending:
                matching = [r for r in matching if self._sort_key(r, query.order_by) < after]
            else:
                matching = [r for r in matching if self._sort_key(r, query.order_by) > after]

        items = [record.model_copy(deep=True) for record in matching[:query.page_size]]
        next_cursor = None
        if len(items) == query.page_size:
            next_cursor = encode_token(self._sort_key(items[-1], query.order_by))

        logger.debug(f"Fetched {len(items)} properties after {cursor!r}")
        return Page(items=items, next_cursor=next_cursor, page_size=query.page_size)

    async def get_property(self, property_id: str) -> Optional[PropertyRecord]:
        record = self._properties.get(property_id)
        return record.model_copy(deep=True) if record else None

    async def get_properties(self, property_ids: Sequence[str]) -> List[PropertyRecord]:
        return [
            self._properties[pid].model_copy(deep=True)
            for pid in property_ids
            if pid in self._properties
        ]

    async def list_properties(self) -> List[PropertyRecord]:
        records = sorted(
            self._properties.values(),
            key=lambda r: (r.created_at, r.id),
            reverse=True
        )
        return [record.model_copy(deep=True) for record in records]

    async def create_property(self, data: Dict[str, Any]) -> PropertyRecord:
        async with self._lock:
            now = _now()
            payload = dict(data)
            payload.setdefault("id", generate_id())
            payload.setdefault("listed_on", date.today())
            payload.setdefault("created_at", now)
            payload.setdefault("updated_at", now)
            record = PropertyRecord.model_validate(payload)
            self._properties[record.id] = record
        logger.info(f"Created property {record.id} in {record.region}")
        return record.model_copy(deep=True)

    async def update_property(self, property_id: str, changes: Dict[str, Any]) -> Optional[PropertyRecord]:
        async with self._lock:
            current = self._properties.get(property_id)
            if current is None:
                return None
            unknown = set(changes) - set(PropertyRecord.model_fields)
            if unknown:
                raise ValueError(f"Unknown property fields: {', '.join(sorted(unknown))}")
            payload = current.model_dump()
            payload.update(changes)
            payload["updated_at"] = _now()
            record = PropertyRecord.model_validate(payload)
            self._properties[property_id] = record
        logger.info(f"Updated property {property_id}: {sorted(changes)}")
        return record.model_copy(deep=True)

    async def delete_properties(self, property_ids: Sequence[str]) -> int:
        async with self._lock:
            deleted = 0
            for pid in set(property_ids):
                if self._properties.pop(pid, None) is not None:
                    deleted += 1
        logger.info(f"Deleted {deleted} of {len(property_ids)} properties")
        return deleted

    # Users

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        record = self._users.get(user_id)
        return record.model_copy(deep=True) if record else None

    async def create_user(self, record: UserRecord) -> UserRecord:
        async with self._lock:
            if record.id in self._users:
                raise DuplicateResourceError("User", record.id)
            stored = record.model_copy(deep=True, update={"created_at": record.created_at or _now()})
            self._users[stored.id] = stored
        logger.info(f"Created user record {stored.id} ({stored.email})")
        return stored.model_copy(deep=True)

    async def list_users(self) -> List[UserRecord]:
        return [record.model_copy(deep=True) for record in self._users.values()]

    async def update_user(self, user_id: str, changes: Dict[str, Any]) -> Optional[UserRecord]:
        check_user_changes(changes)
        async with self._lock:
            current = self._users.get(user_id)
            if current is None:
                return None
            payload = current.model_dump()
            payload.update(changes)
            record = UserRecord.model_validate(payload)
            self._users[user_id] = record
        return record.model_copy(deep=True)

    async def delete_user(self, user_id: str) -> bool:
        async with self._lock:
            return self._users.pop(user_id, None) is not None

    async def update_favorites(
        self,
        user_id: str,
        favorites: Sequence[str],
        expected_version: int
    ) -> UserRecord:
        async with self._lock:
            current = self._users.get(user_id)
            if current is None:
                raise UserNotFoundError(user_id)
            if current.favorites_version != expected_version:
                logger.info(
                    f"Favorites conflict for {user_id}: expected version {expected_version}, "
                    f"found {current.favorites_version}"
                )
                raise FavoritesConflictError(current.model_copy(deep=True))
            record = current.model_copy(
                deep=True,
                update={"favorites": list(favorites), "favorites_version": expected_version + 1}
            )
            self._users[user_id] = record
        return record.model_copy(deep=True)

    # Audit log

    async def append_log(self, action: str, performed_by: str, target: str) -> LogRecord:
        entry = LogRecord(
            id=generate_id(),
            action=action,
            performed_by=performed_by,
            target=target,
            timestamp=_now()
        )
        async with self._lock:
            self._logs.append(entry)
        return entry.model_copy()

    async def list_logs(self) -> List[LogRecord]:
        return [entry.model_copy() for entry in reversed(self._logs)]
