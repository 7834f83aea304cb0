"""
Relational gateway backed by async SQLAlchemy.

Every call opens its own session from the session factory, so the gateway can
be shared freely across requests and client components. Listing pages are
addressed by integer offsets into the ordered result.
"""

from contextlib import asynccontextmanager
from sqlalchemy import select, update, delete, desc, asc, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from listing_api.gateway.base import (
    Cursor,
    ListingGateway,
    ListingQuery,
    Page,
    Predicate,
    PredicateOp,
    check_user_changes,
)
from listing_api.models.property import Property
from listing_api.models.user import User
from listing_api.models.log_entry import LogEntry
from listing_api.schemas.records import PropertyRecord, UserRecord, LogRecord
from listing_api.utils.exceptions import (
    DuplicateResourceError,
    FavoritesConflictError,
    GatewayError,
    UserNotFoundError,
    ValidationError,
)
from typing import Any, Dict, List, Optional, Sequence
import logging

logger = logging.getLogger(__name__)

# Largest OFFSET every supported driver binds as a 64-bit integer
MAX_OFFSET = 2 ** 63 - 1
_CURSOR_ERRORS = ({"field": "cursor", "message": f"must be an integer from 0 to {MAX_OFFSET}"},)


class SqlGateway(ListingGateway):
    """Gateway over the ``properties``, ``users`` and ``logs`` tables."""

    pagination = "offset"

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str):
        """Open a session and translate driver failures into GatewayError."""
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            # Driver messages carry SQL and stay in the log
            logger.error(f"Failed to {operation}: {e}", exc_info=True)
            raise GatewayError(operation, type(e).__name__) from e

    @staticmethod
    def _condition(predicate: Predicate):
        column = getattr(Property, predicate.field)
        value = predicate.value
        if predicate.op is PredicateOp.EQ:
            return column == value
        if predicate.op is PredicateOp.CONTAINS:
            return column.icontains(str(value), autoescape=True)
        if predicate.op is PredicateOp.GTE:
            return column >= value
        if predicate.op is PredicateOp.LTE:
            return column <= value
        raise ValueError(f"Unsupported predicate operator: {predicate.op}")

    # Listings

    def parse_cursor(self, raw: str) -> Cursor:
        try:
            offset = int(raw)
        except (TypeError, ValueError):
            raise ValidationError("Invalid cursor", list(_CURSOR_ERRORS))
        if not 0 <= offset <= MAX_OFFSET:
            raise ValidationError("Invalid cursor", list(_CURSOR_ERRORS))
        return offset

    async def fetch_page(self, query: ListingQuery, cursor: Optional[Cursor] = None) -> Page:
        offset = int(cursor or 0)
        order_column = getattr(Property, query.order_by)
        direction = desc if query.descending else asc

        stmt = select(Property)
        for predicate in query.predicates:
            stmt = stmt.where(self._condition(predicate))
        stmt = (
            stmt.order_by(direction(order_column), direction(Property.id))
            .offset(offset)
            .limit(query.page_size)
        )

        async with self._session("fetch listing page") as session:
            result = await session.execute(stmt)
            items = [PropertyRecord.model_validate(row) for row in result.scalars().all()]

        logger.debug(f"Fetched {len(items)} properties at offset {offset}")
        next_cursor = offset + len(items) if len(items) == query.page_size else None
        return Page(items=items, next_cursor=next_cursor, page_size=query.page_size)

    async def get_property(self, property_id: str) -> Optional[PropertyRecord]:
        async with self._session("get property") as session:
            property_obj = await session.get(Property, property_id)
            return PropertyRecord.model_validate(property_obj) if property_obj else None

    async def get_properties(self, property_ids: Sequence[str]) -> List[PropertyRecord]:
        if not property_ids:
            return []
        async with self._session("get properties") as session:
            result = await session.execute(select(Property).where(Property.id.in_(list(property_ids))))
            by_id = {row.id: PropertyRecord.model_validate(row) for row in result.scalars().all()}
        return [by_id[pid] for pid in property_ids if pid in by_id]

    async def list_properties(self) -> List[PropertyRecord]:
        stmt = select(Property).order_by(desc(Property.created_at), desc(Property.id))
        async with self._session("list properties") as session:
            result = await session.execute(stmt)
            return [PropertyRecord.model_validate(row) for row in result.scalars().all()]

    async def create_property(self, data: Dict[str, Any]) -> PropertyRecord:
        async with self._session("create property") as session:
            property_obj = Property(**data)
            session.add(property_obj)
            await session.commit()
            await session.refresh(property_obj)
            logger.info(f"Created property {property_obj.id} in {property_obj.region}")
            return PropertyRecord.model_validate(property_obj)

    async def update_property(self, property_id: str, changes: Dict[str, Any]) -> Optional[PropertyRecord]:
        async with self._session("update property") as session:
            property_obj = await session.get(Property, property_id)
            if property_obj is None:
                return None
            for field, value in changes.items():
                if not hasattr(Property, field):
                    raise ValueError(f"Unknown property field: {field}")
                setattr(property_obj, field, value)
            await session.commit()
            await session.refresh(property_obj)
            logger.info(f"Updated property {property_id}: {sorted(changes)}")
            return PropertyRecord.model_validate(property_obj)

    async def delete_properties(self, property_ids: Sequence[str]) -> int:
        if not property_ids:
            return 0
        async with self._session("delete properties") as session:
            result = await session.execute(
                delete(Property).where(Property.id.in_(list(property_ids)))
            )
            await session.commit()
            logger.info(f"Deleted {result.rowcount} of {len(property_ids)} properties")
            return result.rowcount

    # Users

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        async with self._session("get user") as session:
            user = await session.get(User, user_id)
            return UserRecord.model_validate(user) if user else None

    async def create_user(self, record: UserRecord) -> UserRecord:
        async with self._session("create user") as session:
            user = User(
                id=record.id,
                email=record.email,
                display_name=record.display_name,
                photo_url=record.photo_url,
                role=record.role,
                disabled=record.disabled,
                favorites=list(record.favorites),
                favorites_version=record.favorites_version,
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise DuplicateResourceError("User", record.id)
            await session.refresh(user)
            logger.info(f"Created user record {user.id} ({user.email})")
            return UserRecord.model_validate(user)

    async def list_users(self) -> List[UserRecord]:
        async with self._session("list users") as session:
            result = await session.execute(select(User).order_by(asc(User.created_at), asc(User.id)))
            return [UserRecord.model_validate(row) for row in result.scalars().all()]

    async def update_user(self, user_id: str, changes: Dict[str, Any]) -> Optional[UserRecord]:
        check_user_changes(changes)
        async with self._session("update user") as session:
            user = await session.get(User, user_id)
            if user is None:
                return None
            for field, value in changes.items():
                setattr(user, field, value)
            await session.commit()
            await session.refresh(user)
            return UserRecord.model_validate(user)

    async def delete_user(self, user_id: str) -> bool:
        async with self._session("delete user") as session:
            result = await session.execute(delete(User).where(User.id == user_id))
            await session.commit()
            return result.rowcount > 0

    async def update_favorites(
        self,
        user_id: str,
        favorites: Sequence[str],
        expected_version: int
    ) -> UserRecord:
        # Single conditional UPDATE; no row matched means a concurrent write won
        stmt = (
            update(User)
            .where(User.id == user_id, User.favorites_version == expected_version)
            .values(favorites=list(favorites), favorites_version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        async with self._session("update favorites") as session:
            result = await session.execute(stmt)
            await session.commit()

            user = await session.get(User, user_id, populate_existing=True)
            if user is None:
                raise UserNotFoundError(user_id)
            record = UserRecord.model_validate(user)

        if result.rowcount == 0:
            logger.info(
                f"Favorites conflict for {user_id}: expected version {expected_version}, "
                f"found {record.favorites_version}"
            )
            raise FavoritesConflictError(record)
        return record

    # Audit log

    async def append_log(self, action: str, performed_by: str, target: str) -> LogRecord:
        async with self._session("append log entry") as session:
            last = await session.scalar(select(func.max(LogEntry.sequence)))
            entry = LogEntry(
                sequence=(last or 0) + 1, action=action, performed_by=performed_by, target=target
            )
            session.add(entry)
            await session.commit()
            await session.refresh(entry)
            return LogRecord.model_validate(entry)

    async def list_logs(self) -> List[LogRecord]:
        stmt = select(LogEntry).order_by(desc(LogEntry.sequence))
        async with self._session("list log entries") as session:
            result = await session.execute(stmt)
            return [LogRecord.model_validate(row) for row in result.scalars().all()]
