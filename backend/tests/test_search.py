"""Tests for deal and restaurant search."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from conftest import DALLAS, SEATTLE, make_deal, make_restaurant, make_user
from localdeals.errors import InvalidLocation, ValidationFailed
from localdeals.models import Deal, Restaurant
from localdeals.services.geocoding import Coordinate
from localdeals.services.search import (
    LocationFilter,
    SearchService,
    matches_cuisines,
    rank_deals,
    rank_restaurants,
)

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)
FRISCO_POINT = Coordinate(32.9537, -96.8236)


def _restaurant(name, lat=None, lng=None, cuisines=None, rating="0"):
    return Restaurant(
        name=name,
        address="1 Test Way",
        city="Frisco",
        state="TX",
        zip_code="75035",
        latitude=Decimal(str(lat)) if lat is not None else None,
        longitude=Decimal(str(lng)) if lng is not None else None,
        cuisine_types=cuisines or [],
        rating=Decimal(rating),
    )


def _deal(title, ends_in_hours):
    return Deal(
        title=title,
        original_price=Decimal("10"),
        deal_price=Decimal("5"),
        end_time=NOW + timedelta(hours=ends_in_hours),
        is_active=True,
    )


class TestMatchesCuisines:
    def test_empty_request_matches_everything(self):
        assert matches_cuisines(["Thai"], [])
        assert matches_cuisines([], None)

    def test_case_insensitive_intersection(self):
        assert matches_cuisines(["Mexican", "Tex-Mex"], ["mexican"])
        assert matches_cuisines(["italian"], ["Pizza", "ITALIAN"])

    def test_no_overlap(self):
        assert not matches_cuisines(["Thai"], ["Mexican"])
        assert not matches_cuisines(None, ["Mexican"])


class TestRankDeals:
    def setup_method(self):
        self.near = _restaurant("Near", 32.95, -96.82, ["Mexican"])
        self.far = _restaurant("Far", 32.7767, -96.7970, ["Thai"])
        self.nowhere = _restaurant("Nowhere", cuisines=["Mexican"])

    def test_orders_by_distance_with_location(self):
        rows = [
            (_deal("far deal", 1), self.far),
            (_deal("near deal", 5), self.near),
        ]
        location = LocationFilter(FRISCO_POINT, 20)
        results = rank_deals(rows, location=location)
        assert [r.deal.title for r in results] == ["near deal", "far deal"]
        assert results[0].distance < results[1].distance

    def test_radius_cut_and_missing_coordinates(self):
        rows = [
            (_deal("near deal", 1), self.near),
            (_deal("far deal", 1), self.far),
            (_deal("nowhere deal", 1), self.nowhere),
        ]
        results = rank_deals(rows, location=LocationFilter(FRISCO_POINT, 10))
        assert [r.deal.title for r in results] == ["near deal"]

    def test_orders_by_end_time_without_location(self):
        rows = [
            (_deal("later", 5), self.near),
            (_deal("sooner", 1), self.nowhere),
        ]
        results = rank_deals(rows)
        assert [r.deal.title for r in results] == ["sooner", "later"]
        assert all(r.distance is None for r in results)

    def test_distance_ties_broken_by_end_time(self):
        rows = [
            (_deal("later", 8), self.near),
            (_deal("sooner", 2), self.near),
        ]
        results = rank_deals(rows, location=LocationFilter(FRISCO_POINT, 10))
        assert [r.deal.title for r in results] == ["sooner", "later"]

    def test_cuisine_filter(self):
        rows = [
            (_deal("tacos", 1), self.near),
            (_deal("curry", 1), self.far),
        ]
        results = rank_deals(rows, cuisine_types=["thai"])
        assert [r.deal.title for r in results] == ["curry"]
        assert results[0].cuisine_types == ["Thai"]


class TestRankRestaurants:
    def test_rating_then_name_without_location(self):
        restaurants = [
            _restaurant("Bravo", rating="4.0"),
            _restaurant("Alpha", rating="4.0"),
            _restaurant("Zulu", rating="4.9"),
        ]
        results = rank_restaurants(restaurants)
        assert [r.restaurant.name for r in results] == ["Zulu", "Alpha", "Bravo"]

    def test_distance_with_location(self):
        restaurants = [
            _restaurant("Dallas", 32.7767, -96.7970, rating="5.0"),
            _restaurant("Frisco", 32.9537, -96.8236, rating="1.0"),
        ]
        results = rank_restaurants(restaurants, location=LocationFilter(FRISCO_POINT, 50))
        assert [r.restaurant.name for r in results] == ["Frisco", "Dallas"]
        assert results[0].distance == pytest.approx(0.0, abs=1e-6)


class TestLocationFilter:
    def setup_method(self):
        self.service = SearchService()

    def test_blank_location_means_no_filter(self):
        assert self.service.location_filter(None) is None
        assert self.service.location_filter("   ", 5) is None

    def test_default_radius(self):
        location = self.service.location_filter("75035")
        assert location == LocationFilter(FRISCO_POINT, 10.0)

    def test_unresolvable_location_raises(self):
        with pytest.raises(InvalidLocation):
            self.service.location_filter("Gotham, ZZ", 10)

    @pytest.mark.parametrize("radius", [0, -5, 501])
    def test_radius_bounds(self, radius):
        with pytest.raises(ValidationFailed):
            self.service.location_filter("75035", radius)


@pytest.mark.asyncio
async def test_search_excludes_inactive_and_expired(db, restaurant):
    await make_deal(db, restaurant, title="Running")
    await make_deal(db, restaurant, title="Paused", is_active=False)
    await make_deal(db, restaurant, title="Over", ends_in=timedelta(minutes=-5))

    results = await SearchService().search_deals(db)
    assert [r.deal.title for r in results] == ["Running"]
    assert results[0].restaurant_name == restaurant.name
    assert results[0].distance is None


@pytest.mark.asyncio
async def test_search_by_zip_within_radius(db, restaurant):
    service = SearchService()
    other_owner = await make_user(db, "restaurant")
    dallas = await make_restaurant(db, other_owner, name="Dallas Diner", coords=DALLAS, city="Dallas")
    seattle_owner = await make_user(db, "restaurant")
    seattle = await make_restaurant(db, seattle_owner, name="Seattle Sushi", coords=SEATTLE)
    no_coords_owner = await make_user(db, "restaurant")
    unknown = await make_restaurant(db, no_coords_owner, name="Ghost Kitchen", coords=None)

    await make_deal(db, restaurant, title="Frisco Tacos")
    await make_deal(db, dallas, title="Dallas Brisket")
    await make_deal(db, seattle, title="Seattle Rolls")
    await make_deal(db, unknown, title="Ghost Wings")

    results = await service.search_deals(db, location=service.location_filter("75035", 10))
    assert [r.deal.title for r in results] == ["Frisco Tacos"]
    assert results[0].distance == pytest.approx(0.0, abs=0.01)

    wider = await service.search_deals(db, location=service.location_filter("75035", 20))
    assert [r.deal.title for r in wider] == ["Frisco Tacos", "Dallas Brisket"]
    assert all(r.distance <= 20 for r in wider)


@pytest.mark.asyncio
async def test_search_without_location_includes_uncoded_restaurants(db, restaurant):
    owner = await make_user(db, "restaurant")
    unknown = await make_restaurant(db, owner, name="Ghost Kitchen", coords=None)
    await make_deal(db, unknown, title="Ghost Wings", ends_in=timedelta(hours=1))
    await make_deal(db, restaurant, title="Frisco Tacos", ends_in=timedelta(hours=2))

    results = await SearchService().search_deals(db)
    assert [r.deal.title for r in results] == ["Ghost Wings", "Frisco Tacos"]


@pytest.mark.asyncio
async def test_search_text_price_and_cuisine(db, restaurant):
    owner = await make_user(db, "restaurant")
    thai = await make_restaurant(db, owner, name="Bangkok Bites", cuisine_types=["Thai"])
    await make_deal(db, restaurant, title="Taco Tuesday", deal_price="6.00")
    await make_deal(db, restaurant, title="Burrito Bowl", deal_price="9.50", description=None)
    await make_deal(db, thai, title="Pad Thai Lunch", deal_price="8.00", description="Noodles 50% off")

    service = SearchService()

    by_text = await service.search_deals(db, "taco")
    assert [r.deal.title for r in by_text] == ["Taco Tuesday"]

    by_restaurant_name = await service.search_deals(db, "bangkok")
    assert [r.deal.title for r in by_restaurant_name] == ["Pad Thai Lunch"]

    by_literal_percent = await service.search_deals(db, "50%")
    assert [r.deal.title for r in by_literal_percent] == ["Pad Thai Lunch"]

    by_price = await service.search_deals(db, max_price=Decimal("8.00"))
    assert {r.deal.title for r in by_price} == {"Taco Tuesday", "Pad Thai Lunch"}

    by_cuisine = await service.search_deals(db, cuisine_types=["thai"])
    assert [r.deal.title for r in by_cuisine] == ["Pad Thai Lunch"]


@pytest.mark.asyncio
async def test_search_pagination(db, restaurant):
    for hours in range(1, 6):
        await make_deal(db, restaurant, title=f"Deal {hours}", ends_in=timedelta(hours=hours))

    service = SearchService()
    page = await service.search_deals(db, limit=2, offset=1)
    assert [r.deal.title for r in page] == ["Deal 2", "Deal 3"]


@pytest.mark.asyncio
async def test_search_restaurants(db, restaurant):
    owner = await make_user(db, "restaurant")
    await make_restaurant(
        db, owner, name="Dallas Diner", coords=DALLAS, rating="4.90", cuisine_types=["American"]
    )
    service = SearchService()

    by_rating = await service.search_restaurants(db)
    assert [r.restaurant.name for r in by_rating] == ["Dallas Diner", "Taqueria Frisco"]

    by_distance = await service.search_restaurants(
        db, location=service.location_filter("Plano, TX", 25)
    )
    assert [r.restaurant.name for r in by_distance] == ["Taqueria Frisco", "Dallas Diner"]

    by_cuisine = await service.search_restaurants(db, cuisine_types=["american"])
    assert [r.restaurant.name for r in by_cuisine] == ["Dallas Diner"]

    by_text = await service.search_restaurants(db, "taqueria")
    assert [r.restaurant.name for r in by_text] == ["Taqueria Frisco"]


@pytest.mark.asyncio
async def test_restaurants_near_location_uses_bounding_box(db, restaurant):
    owner = await make_user(db, "restaurant")
    await make_restaurant(db, owner, name="Seattle Sushi", coords=SEATTLE)

    nearby = await SearchService().get_restaurants_near_location(db, 32.95, -96.82, 5)
    assert [r.name for r in nearby] == ["Taqueria Frisco"]
