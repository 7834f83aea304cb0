"""
Tests for search criteria, query derivation and the URL-synced filter state.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from listing_api.client.filters import FilterState, Navigator, parse_query_string, to_query_string
from listing_api.gateway.base import PredicateOp
from listing_api.models.property import MarketingType, PropertyType
from listing_api.schemas.filters import FilterCriteria, PRICE_UNBOUNDED
from listing_api.services.listing import build_listing_query


class TestBuildListingQuery:
    """Test derivation of gateway queries from criteria."""

    def test_default_criteria_produce_no_predicates(self):
        """Default criteria issue an unfiltered query, newest first."""
        query = build_listing_query(FilterCriteria(), page_size=12)

        assert query.predicates == ()
        assert query.order_by == "listed_on"
        assert query.descending is True
        assert query.page_size == 12

    def test_search_bar_scenario(self):
        """A maximum at or above the sentinel adds no upper bound."""
        criteria = FilterCriteria(region="BSD", price_min=500_000_000, price_max=10 ** 12, bedrooms_min=2)

        query = build_listing_query(criteria, page_size=12, region_match="partial")

        assert query.fields == {"region", "price", "bedrooms"}
        assert query.find("region").op is PredicateOp.CONTAINS
        assert query.find("region").value == "BSD"
        assert query.find("price", PredicateOp.GTE).value == 500_000_000
        assert query.find("price", PredicateOp.LTE) is None
        assert query.find("bedrooms").op is PredicateOp.GTE
        assert query.find("bedrooms").value == 2
        assert query.find("bathrooms") is None

    def test_price_max_below_sentinel_adds_upper_bound(self):
        query = build_listing_query(FilterCriteria(price_max=750_000_000))

        assert query.find("price", PredicateOp.LTE).value == 750_000_000
        assert query.find("price", PredicateOp.GTE) is None

    def test_exact_region_match(self):
        query = build_listing_query(FilterCriteria(region="serpong"), region_match="exact")

        predicate = query.find("region")
        assert predicate.op is PredicateOp.EQ
        assert predicate.value == "SERPONG"

    def test_type_filters_use_equality(self):
        criteria = FilterCriteria(marketing_type=MarketingType.FOR_RENT, property_type=PropertyType.APARTMENT)

        query = build_listing_query(criteria)

        assert query.find("marketing_type").op is PredicateOp.EQ
        assert query.find("marketing_type").value is MarketingType.FOR_RENT
        assert query.find("property_type").value is PropertyType.APARTMENT

    def test_zero_minimums_are_ignored(self):
        query = build_listing_query(FilterCriteria(bedrooms_min=0, bathrooms_min=0, price_min=0))
        assert query.predicates == ()


class TestQueryString:
    """Test criteria serialization to and from the address bar."""

    def test_defaults_serialize_to_empty_string(self):
        assert to_query_string(FilterCriteria()) == ""

    def test_only_changed_fields_are_written(self):
        query = to_query_string(FilterCriteria(region="bsd", bedrooms_min=2))

        assert query == "region=BSD&bedrooms_min=2"

    def test_property_type_uses_type_key(self):
        query = to_query_string(FilterCriteria(property_type=PropertyType.SHOPHOUSE))
        assert query == "type=shophouse"

    @pytest.mark.parametrize("criteria", [
        FilterCriteria(region="BSD"),
        FilterCriteria(region="Gading Serpong", price_min=500_000_000, price_max=10 ** 12),
        FilterCriteria(
            region="BINTARO SEKTOR 9",
            marketing_type=MarketingType.FOR_RENT,
            property_type=PropertyType.LAND_LOT,
            price_max=750_000_000,
            bedrooms_min=3,
            bathrooms_min=2,
        ),
    ])
    def test_round_trip(self, criteria):
        """Serializing then parsing yields the same criteria."""
        assert parse_query_string(to_query_string(criteria)) == criteria

    def test_unparsable_values_fall_back_to_defaults(self):
        criteria = parse_query_string("region=bsd&price_min=abc&bedrooms_min=-1&type=castle")

        assert criteria.region == "BSD"
        assert criteria.price_min == 0
        assert criteria.bedrooms_min == 0
        assert criteria.property_type is None

    def test_unknown_keys_are_ignored(self):
        assert parse_query_string("?utm_source=mail&page=3") == FilterCriteria()

    def test_price_max_missing_means_unbounded(self):
        assert parse_query_string("price_min=100").price_max == PRICE_UNBOUNDED


class TestFilterState:
    """Test the filter state and its navigation side effects."""

    @pytest.mark.asyncio
    async def test_initial_criteria_come_from_location(self):
        navigator = Navigator("/search?region=bsd&bathrooms_min=2")

        state = FilterState(navigator)

        assert state.criteria.region == "BSD"
        assert state.criteria.bathrooms_min == 2
        assert state.is_filter_active

    @pytest.mark.asyncio
    async def test_set_notifies_without_navigating(self):
        navigator = Navigator("/search")
        state = FilterState(navigator)
        seen = []

        async def listener(criteria):
            seen.append(criteria)

        state.subscribe(listener)
        await state.set(bedrooms_min=3)

        assert seen == [FilterCriteria(bedrooms_min=3)]
        assert len(navigator.history) == 1

    @pytest.mark.asyncio
    async def test_stage_then_apply_pushes_once(self):
        navigator = Navigator("/search")
        state = FilterState(navigator)
        seen = []

        async def listener(criteria):
            seen.append(criteria)

        state.subscribe(listener)
        state.stage(region="bsd")
        state.stage(marketing_type="for_sale", price_min=500_000_000)

        assert state.criteria == FilterCriteria()
        assert seen == []

        await state.apply()

        assert len(navigator.history) == 2
        assert navigator.current.path == "/search"
        assert parse_query_string(navigator.current.query) == state.criteria
        assert state.criteria.marketing_type is MarketingType.FOR_SALE
        assert state.pending == {}
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_invalid_stage_is_rejected(self):
        state = FilterState(Navigator("/search"))
        state.stage(region="bsd")

        with pytest.raises(PydanticValidationError):
            state.stage(bedrooms_min=-1)

        assert state.pending == {"region": "bsd"}

    def test_discard_pending(self):
        state = FilterState(Navigator("/search"))
        state.stage(region="bsd", bedrooms_min=2)

        state.discard_pending()

        assert state.pending == {}
        assert state.criteria == FilterCriteria()

    @pytest.mark.asyncio
    async def test_search_replaces_region_and_price(self):
        navigator = Navigator("/search?bedrooms_min=2&price_max=900000000")
        state = FilterState(navigator)

        await state.search("serpong", price_min=300_000_000)

        assert state.criteria.region == "SERPONG"
        assert state.criteria.price_min == 300_000_000
        assert state.criteria.price_max == PRICE_UNBOUNDED
        assert state.criteria.bedrooms_min == 2
        assert navigator.current.query == "region=SERPONG&price_min=300000000&bedrooms_min=2"

    @pytest.mark.asyncio
    async def test_reset_navigates_to_bare_path(self):
        navigator = Navigator("/search?region=bsd")
        state = FilterState(navigator)
        state.stage(bedrooms_min=4)

        await state.reset()

        assert state.criteria == FilterCriteria()
        assert state.pending == {}
        assert navigator.current.url == "/search"
        assert not state.is_filter_active

    @pytest.mark.asyncio
    async def test_sync_from_location_after_navigation(self):
        navigator = Navigator("/search")
        state = FilterState(navigator)

        navigator.push("/search?type=apartment")
        await state.sync_from_location()

        assert state.criteria.property_type is PropertyType.APARTMENT

    def test_navigator_listeners_see_every_push(self):
        navigator = Navigator()
        seen = []
        unsubscribe = navigator.subscribe(lambda location: seen.append(location.url))

        navigator.push("/search?region=BSD")
        unsubscribe()
        navigator.push("/search")

        assert seen == ["/search?region=BSD"]
