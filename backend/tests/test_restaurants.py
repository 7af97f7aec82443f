"""Tests for restaurant registration, geocoding and analytics."""

from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import auth_headers, make_deal, make_restaurant, make_user
from localdeals.errors import DuplicateRestaurant, NotFound
from localdeals.models import Restaurant
from localdeals.services.deals import DealService
from localdeals.services.geocoding import Coordinate, Gazetteer
from localdeals.services.restaurants import RestaurantService, resolve_or_keep_existing


def registration(**overrides):
    data = {
        "name": "Pho Plano",
        "address": "500 Legacy Dr",
        "city": "Plano",
        "state": "TX",
        "zip_code": "75024",
        "cuisine_types": ["Vietnamese"],
    }
    data.update(overrides)
    return data


class TestResolveOrKeepExisting:
    def setup_method(self):
        self.gazetteer = Gazetteer(
            {"75035": Coordinate(32.9537, -96.8236)},
            {"plano,tx": Coordinate(33.0198, -96.6989)},
        )

    def test_existing_coordinates_are_kept(self):
        restaurant = Restaurant(latitude=Decimal("1.5"), longitude=Decimal("2.5"), zip_code="75035")
        result = resolve_or_keep_existing(restaurant, {"zip_code": "75035"}, self.gazetteer)
        assert result.status == "kept"
        assert result.coordinate == Coordinate(1.5, 2.5)

    def test_missing_coordinates_resolved_from_zip(self):
        restaurant = Restaurant(city="Frisco", state="TX", zip_code="00000")
        result = resolve_or_keep_existing(restaurant, {"zip_code": "75035"}, self.gazetteer)
        assert result.status == "resolved"
        assert result.coordinate == Coordinate(32.9537, -96.8236)

    def test_falls_back_to_city_state(self):
        restaurant = Restaurant(city="Nowhere", state="TX", zip_code="75099")
        result = resolve_or_keep_existing(restaurant, {"city": "Plano"}, self.gazetteer)
        assert result.status == "resolved"
        assert result.coordinate == Coordinate(33.0198, -96.6989)

    def test_no_location_change_stays_unresolved(self):
        restaurant = Restaurant(city="Plano", state="TX", zip_code="75099")
        result = resolve_or_keep_existing(restaurant, {"name": "New name"}, self.gazetteer)
        assert result.status == "unresolved"
        assert result.coordinate is None

    def test_unknown_address(self):
        restaurant = Restaurant(city="Austin", state="TX", zip_code="78701")
        result = resolve_or_keep_existing(restaurant, {"address": "1 Congress Ave"}, self.gazetteer)
        assert result.status == "unresolved"

    def test_does_not_mutate(self):
        restaurant = Restaurant(city="Frisco", state="TX", zip_code="00000")
        resolve_or_keep_existing(restaurant, {"zip_code": "75035"}, self.gazetteer)
        assert restaurant.latitude is None
        assert restaurant.zip_code == "00000"


@pytest.mark.asyncio
async def test_create_geocodes_from_city_state(db, customer):
    restaurant = await RestaurantService().create_restaurant(db, customer, registration())
    await db.commit()

    assert float(restaurant.latitude) == pytest.approx(33.0198)
    assert float(restaurant.longitude) == pytest.approx(-96.6989)
    assert restaurant.deal_limit == 5
    assert restaurant.deals_used_this_month == 0
    assert customer.user_type == "restaurant"


@pytest.mark.asyncio
async def test_create_geocodes_from_zip(db, customer):
    restaurant = await RestaurantService().create_restaurant(
        db, customer, registration(city="Frisco", zip_code="75035")
    )
    assert float(restaurant.latitude) == pytest.approx(32.9537)


@pytest.mark.asyncio
async def test_create_unresolved_leaves_coordinates_empty(db, customer):
    restaurant = await RestaurantService().create_restaurant(
        db, customer, registration(city="Smalltown", state="KS", zip_code="67000")
    )
    assert restaurant.latitude is None
    assert restaurant.longitude is None
    assert not restaurant.has_coordinates


@pytest.mark.asyncio
async def test_create_ignores_plan_fields(db, customer):
    restaurant = await RestaurantService().create_restaurant(
        db, customer, registration(deal_limit=999, rating=Decimal("5.0"))
    )
    assert restaurant.deal_limit == 5
    assert restaurant.rating == 0


@pytest.mark.asyncio
async def test_one_restaurant_per_owner(db, owner, restaurant):
    with pytest.raises(DuplicateRestaurant):
        await RestaurantService().create_restaurant(db, owner, registration())


@pytest.mark.asyncio
async def test_duplicate_registration_keeps_earlier_changes(db, owner, restaurant):
    restaurant.description = "Family run since 1998"
    await db.flush()

    with pytest.raises(DuplicateRestaurant):
        await RestaurantService().create_restaurant(db, owner, registration())

    await db.commit()
    await db.refresh(restaurant)
    assert restaurant.description == "Family run since 1998"
    assert (await RestaurantService().get_by_owner(db, owner.id)).id == restaurant.id


@pytest.mark.asyncio
async def test_update_regeocodes_only_when_missing(db, owner):
    service = RestaurantService()
    restaurant = await make_restaurant(db, owner, coords=None, city="Smalltown", state="KS", zip_code="67000")

    await service.update_restaurant(db, restaurant, {"name": "Renamed"})
    assert restaurant.latitude is None

    await service.update_restaurant(db, restaurant, {"zip_code": "75035", "city": "Frisco", "state": "TX"})
    await db.commit()
    assert float(restaurant.latitude) == pytest.approx(32.9537)

    # Known coordinates survive an address change.
    await service.update_restaurant(db, restaurant, {"city": "Seattle", "state": "WA", "zip_code": "98101"})
    await db.commit()
    assert restaurant.city == "Seattle"
    assert float(restaurant.latitude) == pytest.approx(32.9537)


@pytest.mark.asyncio
async def test_refresh_coordinates(db, owner):
    restaurant = await make_restaurant(db, owner, coords=None, city="Dallas", state="TX", zip_code="75299")
    outcome = await RestaurantService().refresh_coordinates(db, restaurant)
    assert outcome.status == "resolved"
    assert float(restaurant.latitude) == pytest.approx(32.7767)


@pytest.mark.asyncio
async def test_get_and_get_by_owner(db, owner, restaurant, customer):
    service = RestaurantService()
    assert (await service.get(db, restaurant.id)).name == "Taqueria Frisco"
    assert (await service.get_by_owner(db, owner.id)).id == restaurant.id
    with pytest.raises(NotFound):
        await service.get_by_owner(db, customer.id)


@pytest.mark.asyncio
async def test_analytics(db, restaurant):
    running = await make_deal(db, restaurant, title="Running")
    await make_deal(db, restaurant, title="Paused", is_active=False)
    await make_deal(db, restaurant, title="Over", ends_in=timedelta(hours=-1))

    deals = DealService()
    await deals.increment_view(db, running.id)
    await deals.increment_view(db, running.id)
    await deals.increment_click(db, running.id)
    await db.commit()

    analytics = await RestaurantService().get_restaurant_analytics(db, restaurant.id)
    assert analytics.total_deals == 3
    assert analytics.active_deals == 1
    assert analytics.total_views == 2
    assert analytics.total_clicks == 1


@pytest.mark.asyncio
async def test_analytics_without_deals(db, restaurant):
    analytics = await RestaurantService().get_restaurant_analytics(db, restaurant.id)
    assert (analytics.total_deals, analytics.active_deals) == (0, 0)
    assert (analytics.total_views, analytics.total_clicks) == (0, 0)


# --- HTTP ---


@pytest.mark.asyncio
async def test_api_register_and_update(client, customer):
    headers = auth_headers(customer)
    resp = await client.post("/api/v1/restaurants", json=registration(), headers=headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["latitude"] == pytest.approx(33.0198)
    assert body["subscription_plan"] == "basic"

    resp = await client.post("/api/v1/restaurants", json=registration(), headers=headers)
    assert resp.status_code == 409

    resp = await client.patch(
        "/api/v1/restaurants/my", json={"description": "Best pho in town"}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json()["description"] == "Best pho in town"

    resp = await client.patch("/api/v1/restaurants/my", json={"deal_limit": 100}, headers=headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_api_public_detail_hides_plan(client, restaurant):
    resp = await client.get(f"/api/v1/restaurants/{restaurant.id}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Taqueria Frisco"
    assert "deal_limit" not in body
    assert "subscription_plan" not in body


@pytest.mark.asyncio
async def test_api_search_by_location(client, db, restaurant):
    other = await make_user(db, "restaurant")
    await make_restaurant(db, other, name="Far Away", coords=(Decimal("47.6062"), Decimal("-122.3321")))

    resp = await client.get("/api/v1/restaurants", params={"location": "75035", "radius": 5})
    assert resp.status_code == 200
    body = resp.json()
    assert [r["name"] for r in body] == ["Taqueria Frisco"]
    assert body[0]["distance"] == 0.0


@pytest.mark.asyncio
async def test_api_nearby(client, restaurant):
    resp = await client.get("/api/v1/restaurants/nearby", params={"lat": 32.95, "lng": -96.82})
    assert resp.status_code == 200
    assert [r["name"] for r in resp.json()] == ["Taqueria Frisco"]


@pytest.mark.asyncio
async def test_api_analytics_requires_owner(client, customer, owner, restaurant):
    resp = await client.get("/api/v1/restaurants/my/analytics", headers=auth_headers(customer))
    assert resp.status_code == 403

    resp = await client.get("/api/v1/restaurants/my/analytics", headers=auth_headers(owner))
    assert resp.status_code == 200
    assert resp.json() == {"total_deals": 0, "active_deals": 0, "total_views": 0, "total_clicks": 0}
