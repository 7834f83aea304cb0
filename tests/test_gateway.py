"""
Tests for the data gateways. Every test in TestGatewayContract runs against
both the SQL and the in-memory backend.
"""

import base64
import json
import pytest
from datetime import date

from listing_api.gateway import ListingGateway, ListingQuery, MemoryGateway, Predicate, PredicateOp, SqlGateway
from listing_api.gateway.memory import decode_token, encode_token
from listing_api.models.property import MarketingType, PropertyType
from listing_api.models.user import UserRole
from listing_api.schemas.filters import FilterCriteria, PRICE_UNBOUNDED
from listing_api.schemas.records import UserRecord
from listing_api.services.listing import build_listing_query
from listing_api.utils.exceptions import (
    DuplicateResourceError,
    FavoritesConflictError,
    GatewayError,
    UserNotFoundError,
    ValidationError,
)
from tests.conftest import PropertyFactory


def user_record(user_id: str = "uid-1", **fields) -> UserRecord:
    return UserRecord(id=user_id, email=fields.pop("email", f"{user_id}@example.com"), **fields)


async def fetch_all(gateway: ListingGateway, query: ListingQuery) -> list:
    """Follow cursors until the last page."""
    items, cursor = [], None
    while True:
        page = await gateway.fetch_page(query, cursor)
        items.extend(page.items)
        if not page.has_more:
            return items
        cursor = gateway.parse_cursor(gateway.format_cursor(page.next_cursor))


class TestGatewayContract:
    """Behaviour every backend must share."""

    @pytest.mark.asyncio
    async def test_pages_are_newest_first_without_overlap(self, gateway: ListingGateway):
        created = await PropertyFactory.create_many(gateway, 30)
        query = ListingQuery(page_size=12)

        first = await gateway.fetch_page(query)
        assert len(first.items) == 12
        assert first.has_more
        assert first.items[0].id == created[-1].id

        items = await fetch_all(gateway, query)
        assert len(items) == 30
        assert len({item.id for item in items}) == 30
        assert [item.listed_on for item in items] == sorted((r.listed_on for r in created), reverse=True)

    @pytest.mark.asyncio
    async def test_short_page_has_no_cursor(self, gateway: ListingGateway):
        await PropertyFactory.create_many(gateway, 4)

        page = await gateway.fetch_page(ListingQuery(page_size=12))

        assert len(page.items) == 4
        assert page.next_cursor is None
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_region_contains_is_case_insensitive(self, gateway: ListingGateway):
        await PropertyFactory.create_property(gateway, region="BSD CITY")
        await PropertyFactory.create_property(gateway, region="SERPONG")

        query = ListingQuery(predicates=(Predicate("region", PredicateOp.CONTAINS, "bsd"),))
        page = await gateway.fetch_page(query)

        assert [item.region for item in page.items] == ["BSD CITY"]

    @pytest.mark.asyncio
    async def test_region_exact_match(self, gateway: ListingGateway):
        await PropertyFactory.create_property(gateway, region="BSD CITY")
        await PropertyFactory.create_property(gateway, region="BSD")

        query = ListingQuery(predicates=(Predicate("region", PredicateOp.EQ, "BSD"),))
        page = await gateway.fetch_page(query)

        assert [item.region for item in page.items] == ["BSD"]

    @pytest.mark.asyncio
    async def test_price_bounds_are_inclusive(self, gateway: ListingGateway):
        for price in (400_000_000, 500_000_000, 800_000_000, 900_000_000):
            await PropertyFactory.create_property(gateway, price=price)

        query = ListingQuery(predicates=(
            Predicate("price", PredicateOp.GTE, 500_000_000),
            Predicate("price", PredicateOp.LTE, 800_000_000),
        ))
        page = await gateway.fetch_page(query)

        assert sorted(item.price for item in page.items) == [500_000_000, 800_000_000]

    @pytest.mark.asyncio
    async def test_criteria_price_cap_filters_listings(self, gateway: ListingGateway):
        for price in (500_000_000, 750_000_000, 900_000_000):
            await PropertyFactory.create_property(gateway, price=price)

        capped = await gateway.fetch_page(build_listing_query(FilterCriteria(price_max=750_000_000)))
        unbounded = await gateway.fetch_page(build_listing_query(FilterCriteria(price_max=PRICE_UNBOUNDED)))

        assert sorted(item.price for item in capped.items) == [500_000_000, 750_000_000]
        assert len(unbounded.items) == 3

    @pytest.mark.asyncio
    async def test_minimum_rooms_and_types(self, gateway: ListingGateway):
        await PropertyFactory.create_property(gateway, bedrooms=1, bathrooms=1)
        await PropertyFactory.create_property(gateway, bedrooms=3, bathrooms=1)
        await PropertyFactory.create_property(
            gateway, bedrooms=4, bathrooms=3,
            property_type=PropertyType.APARTMENT, marketing_type=MarketingType.FOR_RENT
        )

        rooms = await gateway.fetch_page(ListingQuery(predicates=(
            Predicate("bedrooms", PredicateOp.GTE, 2),
            Predicate("bathrooms", PredicateOp.GTE, 1),
        )))
        assert sorted(item.bedrooms for item in rooms.items) == [3, 4]

        rentals = await gateway.fetch_page(ListingQuery(predicates=(
            Predicate("marketing_type", PredicateOp.EQ, MarketingType.FOR_RENT),
            Predicate("property_type", PredicateOp.EQ, PropertyType.APARTMENT),
        )))
        assert [item.bedrooms for item in rentals.items] == [4]

    @pytest.mark.asyncio
    async def test_get_properties_keeps_order_and_skips_missing(self, gateway: ListingGateway):
        first, second = await PropertyFactory.create_many(gateway, 2)

        records = await gateway.get_properties([second.id, "missing", first.id])

        assert [record.id for record in records] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_update_and_delete_properties(self, gateway: ListingGateway):
        record = await PropertyFactory.create_property(gateway, price=100)

        updated = await gateway.update_property(record.id, {"price": 200, "notes": "Renovated"})
        assert updated.price == 200
        assert updated.notes == "Renovated"
        assert await gateway.update_property("missing", {"price": 1}) is None

        assert await gateway.delete_properties([record.id, "missing"]) == 1
        assert await gateway.get_property(record.id) is None

    @pytest.mark.asyncio
    async def test_create_user_twice_is_a_conflict(self, gateway: ListingGateway):
        await gateway.create_user(user_record("uid-1"))

        with pytest.raises(DuplicateResourceError):
            await gateway.create_user(user_record("uid-1"))

    @pytest.mark.asyncio
    async def test_update_user_fields(self, gateway: ListingGateway):
        await gateway.create_user(user_record("uid-1"))

        updated = await gateway.update_user("uid-1", {"role": UserRole.SUPER, "disabled": True})

        assert updated.role is UserRole.SUPER
        assert updated.disabled is True
        assert await gateway.update_user("missing", {"disabled": True}) is None
        with pytest.raises(ValueError):
            await gateway.update_user("uid-1", {"favorites": ["x"]})

    @pytest.mark.asyncio
    async def test_delete_user(self, gateway: ListingGateway):
        await gateway.create_user(user_record("uid-1"))

        assert await gateway.delete_user("uid-1") is True
        assert await gateway.delete_user("uid-1") is False
        assert await gateway.list_users() == []

    @pytest.mark.asyncio
    async def test_conditional_favorites_write(self, gateway: ListingGateway):
        await gateway.create_user(user_record("uid-1"))

        record = await gateway.update_favorites("uid-1", ["prop-1"], 0)
        assert record.favorites == ["prop-1"]
        assert record.favorites_version == 1

        with pytest.raises(FavoritesConflictError) as exc_info:
            await gateway.update_favorites("uid-1", [], 0)
        assert exc_info.value.current.favorites == ["prop-1"]
        assert exc_info.value.current.favorites_version == 1

        stored = await gateway.get_user("uid-1")
        assert stored.favorites == ["prop-1"]

    @pytest.mark.asyncio
    async def test_favorites_write_for_missing_user(self, gateway: ListingGateway):
        with pytest.raises(UserNotFoundError):
            await gateway.update_favorites("nobody", ["prop-1"], 0)

    @pytest.mark.asyncio
    async def test_append_log(self, gateway: ListingGateway):
        entry = await gateway.append_log("deleteUser", "admin@example.com", "user@example.com")

        logs = await gateway.list_logs()

        assert [log.id for log in logs] == [entry.id]
        assert logs[0].action == "deleteUser"
        assert logs[0].performed_by == "admin@example.com"
        assert logs[0].target == "user@example.com"
        assert logs[0].timestamp is not None

    @pytest.mark.asyncio
    async def test_logs_written_together_are_newest_first(self, gateway: ListingGateway):
        """Entries appended within one clock tick still list in reverse append order."""
        for target in ("a@example.com", "b@example.com", "c@example.com"):
            await gateway.append_log("toggleUserStatus", "admin@example.com", target)

        logs = await gateway.list_logs()

        assert [log.target for log in logs] == ["c@example.com", "b@example.com", "a@example.com"]


class TestSqlGateway:
    """Offset pagination specifics."""

    def test_parse_cursor(self, sql_gateway: SqlGateway):
        assert sql_gateway.parse_cursor("24") == 24

        for raw in ("abc", "-12", "1.5", "9" * 30):
            with pytest.raises(ValidationError):
                sql_gateway.parse_cursor(raw)

    @pytest.mark.asyncio
    async def test_cursor_is_next_offset(self, sql_gateway: SqlGateway):
        await PropertyFactory.create_many(sql_gateway, 13)

        page = await sql_gateway.fetch_page(ListingQuery(page_size=12))

        assert page.next_cursor == 12
        assert sql_gateway.format_cursor(page.next_cursor) == "12"

    @pytest.mark.asyncio
    async def test_region_wildcards_are_literal(self, sql_gateway: SqlGateway):
        await PropertyFactory.create_property(sql_gateway, region="BSD")

        query = ListingQuery(predicates=(Predicate("region", PredicateOp.CONTAINS, "%"),))
        page = await sql_gateway.fetch_page(query)

        assert page.items == []

    @pytest.mark.asyncio
    async def test_driver_failure_message_stays_out_of_error(self, sql_gateway: SqlGateway):
        record = await PropertyFactory.create_property(sql_gateway)

        with pytest.raises(GatewayError) as exc_info:
            await sql_gateway.update_property(record.id, {"region": None})

        assert exc_info.value.operation == "update property"
        assert exc_info.value.status_code == 503
        assert "NOT NULL" not in exc_info.value.detail
        assert "UPDATE" not in exc_info.value.detail
        assert "properties" not in exc_info.value.detail


class TestMemoryGateway:
    """Keyset pagination specifics."""

    def test_token_round_trip(self):
        token = encode_token((date(2024, 8, 17), "prop-1"))

        assert "=" not in token
        assert decode_token(token) == ("2024-08-17", "prop-1")

    def test_malformed_token_is_rejected(self, memory_gateway: MemoryGateway):
        with pytest.raises(ValidationError):
            memory_gateway.parse_cursor("not-a-token!")

    @pytest.mark.parametrize("key", [[5, "x"], [None, "x"], ["soon", "x"]])
    @pytest.mark.asyncio
    async def test_well_formed_token_with_bad_sort_value_is_rejected(self, memory_gateway: MemoryGateway, key):
        token = base64.urlsafe_b64encode(json.dumps(key).encode("utf-8")).decode("ascii")
        await PropertyFactory.create_many(memory_gateway, 2)

        with pytest.raises(ValidationError):
            memory_gateway.parse_cursor(token)
        with pytest.raises(ValidationError):
            await memory_gateway.fetch_page(ListingQuery(page_size=12), token)

    @pytest.mark.asyncio
    async def test_insert_between_pages_does_not_shift_results(self, memory_gateway: MemoryGateway):
        created = await PropertyFactory.create_many(memory_gateway, 24)
        query = ListingQuery(page_size=12)

        first = await memory_gateway.fetch_page(query)
        await PropertyFactory.create_property(memory_gateway, listed_on=date(2030, 1, 1))
        second = await memory_gateway.fetch_page(query, first.next_cursor)

        seen = [item.id for item in first.items + second.items]
        assert len(set(seen)) == 24
        assert set(seen) == {record.id for record in created}

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, memory_gateway: MemoryGateway):
        record = await PropertyFactory.create_property(memory_gateway, media=["http://test/a.jpg"])

        record.media.append("http://test/b.jpg")

        stored = await memory_gateway.get_property(record.id)
        assert stored.media == ["http://test/a.jpg"]
