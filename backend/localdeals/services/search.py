"""Location-aware search over restaurants and deals.

Text, price and lifecycle predicates run in SQL; the cuisine intersection,
distance enrichment, radius cut and final ordering run in Python over the
joined rows so they behave the same on every backend.

Ordering rules:

* deals with a location: distance ascending (ties by soonest ``end_time``)
* deals without a location: soonest ``end_time`` first
* restaurants with a location: distance ascending
* restaurants without a location: rating descending, then name
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from localdeals.config import get_settings
from localdeals.errors import ValidationFailed
from localdeals.models import Deal, Restaurant
from localdeals.services.distance import bounding_box, distance_miles
from localdeals.services.geocoding import Coordinate, Gazetteer, default_gazetteer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data transfer objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LocationFilter:
    """A resolved search origin plus the inclusion radius in miles."""

    coordinate: Coordinate
    radius_miles: float


@dataclass(frozen=True, slots=True)
class DealSearchResult:
    """A matching deal enriched with its restaurant's public details."""

    deal: Deal
    restaurant_id: uuid.UUID
    restaurant_name: str
    restaurant_phone: str | None
    restaurant_address: str
    restaurant_city: str
    restaurant_state: str
    cuisine_types: list[str]
    distance: float | None


@dataclass(frozen=True, slots=True)
class RestaurantSearchResult:
    restaurant: Restaurant
    distance: float | None


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def restaurant_coordinate(restaurant: Restaurant) -> Coordinate | None:
    """The restaurant's cached coordinates, or ``None`` if not geocoded."""
    if restaurant.latitude is None or restaurant.longitude is None:
        return None
    return Coordinate(float(restaurant.latitude), float(restaurant.longitude))


def normalize_cuisines(cuisines: Iterable[str] | None) -> frozenset[str]:
    if not cuisines:
        return frozenset()
    return frozenset(c.strip().lower() for c in cuisines if c and c.strip())


def matches_cuisines(available: Iterable[str] | None, requested: Iterable[str] | None) -> bool:
    """True when *requested* is empty or shares at least one cuisine."""
    wanted = normalize_cuisines(requested)
    if not wanted:
        return True
    return not wanted.isdisjoint(normalize_cuisines(available))


def _distance_to(restaurant: Restaurant, location: LocationFilter | None) -> float | None:
    if location is None:
        return None
    coordinate = restaurant_coordinate(restaurant)
    if coordinate is None:
        return None
    return distance_miles(location.coordinate, coordinate)


def _enrich(deal: Deal, restaurant: Restaurant, distance: float | None) -> DealSearchResult:
    return DealSearchResult(
        deal=deal,
        restaurant_id=restaurant.id,
        restaurant_name=restaurant.name,
        restaurant_phone=restaurant.phone,
        restaurant_address=restaurant.address,
        restaurant_city=restaurant.city,
        restaurant_state=restaurant.state,
        cuisine_types=list(restaurant.cuisine_types or []),
        distance=distance,
    )


def rank_deals(
    rows: Iterable[tuple[Deal, Restaurant]],
    *,
    cuisine_types: Iterable[str] | None = None,
    location: LocationFilter | None = None,
) -> list[DealSearchResult]:
    """Apply the cuisine and radius filters to joined rows and order them."""
    results: list[DealSearchResult] = []
    for deal, restaurant in rows:
        if not matches_cuisines(restaurant.cuisine_types, cuisine_types):
            continue
        distance = _distance_to(restaurant, location)
        if location is not None and (distance is None or distance > location.radius_miles):
            continue
        results.append(_enrich(deal, restaurant, distance))

    if location is not None:
        results.sort(key=lambda r: (r.distance, r.deal.end_time))
    else:
        results.sort(key=lambda r: r.deal.end_time)
    return results


def rank_restaurants(
    restaurants: Iterable[Restaurant],
    *,
    cuisine_types: Iterable[str] | None = None,
    location: LocationFilter | None = None,
) -> list[RestaurantSearchResult]:
    results: list[RestaurantSearchResult] = []
    for restaurant in restaurants:
        if not matches_cuisines(restaurant.cuisine_types, cuisine_types):
            continue
        distance = _distance_to(restaurant, location)
        if location is not None and (distance is None or distance > location.radius_miles):
            continue
        results.append(RestaurantSearchResult(restaurant=restaurant, distance=distance))

    if location is not None:
        results.sort(key=lambda r: r.distance)
    else:
        results.sort(key=lambda r: (-(r.restaurant.rating or Decimal("0")), r.restaurant.name))
    return results


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class SearchService:
    """Async search over persisted restaurants and deals."""

    def __init__(self, gazetteer: Gazetteer | None = None) -> None:
        self.gazetteer = gazetteer or default_gazetteer()

    def location_filter(
        self,
        location: str | None,
        radius_miles: float | None = None,
    ) -> LocationFilter | None:
        """Turn raw request input into a :class:`LocationFilter`.

        A blank location means "no location filter". A non-blank one that
        the gazetteer cannot resolve raises ``InvalidLocation``; it never
        degrades to an unfiltered search.
        """
        if location is None or not location.strip():
            return None

        settings = get_settings()
        radius = settings.default_search_radius_miles if radius_miles is None else radius_miles
        if radius <= 0 or radius > settings.max_search_radius_miles:
            raise ValidationFailed(
                "Radius must be positive and at most "
                f"{settings.max_search_radius_miles:g} miles",
                details={"radius": radius},
            )

        coordinate = self.gazetteer.require(location)
        return LocationFilter(coordinate=coordinate, radius_miles=radius)

    # ------------------------------------------------------------------
    # Deals
    # ------------------------------------------------------------------

    async def search_deals(
        self,
        session: AsyncSession,
        query: str | None = None,
        *,
        max_price: Decimal | float | None = None,
        cuisine_types: Sequence[str] | None = None,
        location: LocationFilter | None = None,
        now: datetime | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[DealSearchResult]:
        """Return currently running deals matching every given filter."""
        now = now or datetime.now(timezone.utc)

        stmt = (
            select(Deal, Restaurant)
            .join(Restaurant, Deal.restaurant_id == Restaurant.id)
            .where(Deal.is_active.is_(True), Deal.end_time > now)
        )

        term = (query or "").strip()
        if term:
            stmt = stmt.where(
                or_(
                    Deal.title.icontains(term, autoescape=True),
                    Deal.description.icontains(term, autoescape=True),
                    Restaurant.name.icontains(term, autoescape=True),
                )
            )

        if max_price is not None:
            stmt = stmt.where(Deal.deal_price <= max_price)

        if location is not None:
            stmt = stmt.where(
                Restaurant.latitude.is_not(None),
                Restaurant.longitude.is_not(None),
            )

        stmt = stmt.order_by(Deal.end_time)
        result = await session.execute(stmt)
        rows = result.all()

        ranked = rank_deals(rows, cuisine_types=cuisine_types, location=location)
        logger.debug(
            "Deal search q=%r location=%s: %d candidates, %d matched",
            term,
            location,
            len(rows),
            len(ranked),
        )
        if limit is None:
            return ranked[offset:]
        return ranked[offset:offset + limit]

    # ------------------------------------------------------------------
    # Restaurants
    # ------------------------------------------------------------------

    async def search_restaurants(
        self,
        session: AsyncSession,
        query: str | None = None,
        cuisine_types: Sequence[str] | None = None,
        *,
        location: LocationFilter | None = None,
    ) -> list[RestaurantSearchResult]:
        stmt = select(Restaurant)

        term = (query or "").strip()
        if term:
            stmt = stmt.where(
                or_(
                    Restaurant.name.icontains(term, autoescape=True),
                    Restaurant.description.icontains(term, autoescape=True),
                )
            )

        if location is not None:
            stmt = stmt.where(
                Restaurant.latitude.is_not(None),
                Restaurant.longitude.is_not(None),
            )

        stmt = stmt.order_by(Restaurant.rating.desc(), Restaurant.name)
        result = await session.execute(stmt)
        restaurants = result.scalars().all()

        return rank_restaurants(restaurants, cuisine_types=cuisine_types, location=location)

    async def get_restaurants_near_location(
        self,
        session: AsyncSession,
        lat: float,
        lng: float,
        radius_miles: float,
    ) -> list[Restaurant]:
        """Restaurants inside the approximate bounding box around a point.

        Only the rectangular range filter is applied here; results can lie
        slightly outside *radius_miles*.
        """
        min_lat, max_lat, min_lng, max_lng = bounding_box(Coordinate(lat, lng), radius_miles)
        stmt = (
            select(Restaurant)
            .where(
                Restaurant.latitude >= min_lat,
                Restaurant.latitude <= max_lat,
                Restaurant.longitude >= min_lng,
                Restaurant.longitude <= max_lng,
            )
            .order_by(Restaurant.name)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
