"""Restaurant registration, owner updates and coordinate caching."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Literal, Mapping

from sqlalchemy import and_, case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from localdeals.config import get_settings
from localdeals.errors import DuplicateRestaurant, NotFound
from localdeals.models import Deal, Restaurant, User
from localdeals.services.geocoding import Coordinate, Gazetteer, default_gazetteer
from localdeals.services.search import restaurant_coordinate

logger = logging.getLogger(__name__)

LOCATION_FIELDS = ("address", "city", "state", "zip_code")

# Fields an owner may change through settings; plan/quota/rating are not
# among them.
OWNER_EDITABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "address",
        "city",
        "state",
        "zip_code",
        "phone",
        "email",
        "website",
        "image_url",
        "cuisine_types",
    }
)

GeocodeStatus = Literal["kept", "resolved", "unresolved"]


@dataclass(frozen=True, slots=True)
class GeocodeResult:
    status: GeocodeStatus
    coordinate: Coordinate | None = None


@dataclass(frozen=True, slots=True)
class RestaurantAnalytics:
    total_deals: int
    active_deals: int
    total_views: int
    total_clicks: int


def resolve_or_keep_existing(
    restaurant: Restaurant,
    updates: Mapping[str, Any],
    gazetteer: Gazetteer | None = None,
) -> GeocodeResult:
    """Decide the restaurant's coordinates after applying *updates*.

    Existing coordinates are kept as-is even if the address changed. When
    they are missing, resolution is attempted only if *updates* touch a
    location field; otherwise the restaurant stays ``unresolved``.
    Does not mutate *restaurant*.
    """
    existing = restaurant_coordinate(restaurant)
    if existing is not None:
        return GeocodeResult("kept", existing)

    if not any(field in updates for field in LOCATION_FIELDS):
        return GeocodeResult("unresolved")

    merged = {field: updates.get(field, getattr(restaurant, field, None)) for field in LOCATION_FIELDS}
    gazetteer = gazetteer or default_gazetteer()
    coordinate = gazetteer.resolve_address(merged["zip_code"], merged["city"], merged["state"])
    if coordinate is None:
        return GeocodeResult("unresolved")
    return GeocodeResult("resolved", coordinate)


def _apply_geocode(restaurant: Restaurant, result: GeocodeResult) -> None:
    if result.status == "resolved" and result.coordinate is not None:
        restaurant.latitude = Decimal(str(result.coordinate.lat))
        restaurant.longitude = Decimal(str(result.coordinate.lng))


class RestaurantService:
    def __init__(self, gazetteer: Gazetteer | None = None) -> None:
        self.gazetteer = gazetteer or default_gazetteer()

    async def get(self, session: AsyncSession, restaurant_id: uuid.UUID) -> Restaurant:
        result = await session.execute(select(Restaurant).where(Restaurant.id == restaurant_id))
        restaurant = result.scalar_one_or_none()
        if restaurant is None:
            raise NotFound("Restaurant not found")
        return restaurant

    async def get_by_owner(self, session: AsyncSession, owner_id: uuid.UUID) -> Restaurant:
        result = await session.execute(select(Restaurant).where(Restaurant.owner_id == owner_id))
        restaurant = result.scalar_one_or_none()
        if restaurant is None:
            raise NotFound("Restaurant not found")
        return restaurant

    async def create_restaurant(
        self,
        session: AsyncSession,
        owner: User,
        data: Mapping[str, Any],
    ) -> Restaurant:
        """Register the owner's single restaurant and geocode it.

        A second registration for the same owner is rejected by the unique
        ``owner_id`` index and reported as ``DuplicateRestaurant``.
        """
        fields = {k: v for k, v in data.items() if k in OWNER_EDITABLE_FIELDS}
        restaurant = Restaurant(
            owner_id=owner.id,
            deal_limit=get_settings().default_deal_limit,
            deals_used_this_month=0,
            **fields,
        )
        geocode = resolve_or_keep_existing(restaurant, fields, self.gazetteer)
        _apply_geocode(restaurant, geocode)

        owner.user_type = "restaurant"
        try:
            async with session.begin_nested():
                session.add(restaurant)
        except IntegrityError as exc:
            raise DuplicateRestaurant() from exc

        await session.refresh(restaurant)
        logger.info(
            "Restaurant %s registered for owner %s (geocode: %s)",
            restaurant.id,
            owner.id,
            geocode.status,
        )
        return restaurant

    async def update_restaurant(
        self,
        session: AsyncSession,
        restaurant: Restaurant,
        updates: Mapping[str, Any],
    ) -> Restaurant:
        fields = {k: v for k, v in updates.items() if k in OWNER_EDITABLE_FIELDS}
        geocode = resolve_or_keep_existing(restaurant, fields, self.gazetteer)

        for key, value in fields.items():
            setattr(restaurant, key, value)
        _apply_geocode(restaurant, geocode)

        await session.flush()
        await session.refresh(restaurant)
        if geocode.status == "unresolved" and any(f in fields for f in LOCATION_FIELDS):
            logger.warning("Restaurant %s location still unresolved after update", restaurant.id)
        return restaurant

    async def refresh_coordinates(
        self, session: AsyncSession, restaurant: Restaurant
    ) -> GeocodeResult:
        """Retry geocoding a restaurant from its stored address."""
        current = {field: getattr(restaurant, field) for field in LOCATION_FIELDS}
        geocode = resolve_or_keep_existing(restaurant, current, self.gazetteer)
        _apply_geocode(restaurant, geocode)
        await session.flush()
        return geocode

    async def get_restaurant_analytics(
        self,
        session: AsyncSession,
        restaurant_id: uuid.UUID,
        now: datetime | None = None,
    ) -> RestaurantAnalytics:
        now = now or datetime.now(timezone.utc)
        active = case(
            (and_(Deal.is_active.is_(True), Deal.end_time > now), 1),
        )
        result = await session.execute(
            select(
                func.count(Deal.id),
                func.count(active),
                func.coalesce(func.sum(Deal.view_count), 0),
                func.coalesce(func.sum(Deal.click_count), 0),
            ).where(Deal.restaurant_id == restaurant_id)
        )
        total, active_count, views, clicks = result.one()
        return RestaurantAnalytics(
            total_deals=int(total),
            active_deals=int(active_count),
            total_views=int(views),
            total_clicks=int(clicks),
        )
