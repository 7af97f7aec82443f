"""API routes for restaurants."""

import uuid
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from localdeals.auth import get_current_user, require_restaurant_owner
from localdeals.database import get_db
from localdeals.models import Restaurant, User
from localdeals.services.restaurants import RestaurantService
from localdeals.services.search import SearchService

router = APIRouter(prefix="/restaurants", tags=["restaurants"])

restaurant_service = RestaurantService()
search_service = SearchService()


# --- Schemas ---

class RestaurantCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=2)
    zip_code: str = Field(..., min_length=3, max_length=10)
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    image_url: str | None = None
    cuisine_types: list[str] = Field(default_factory=list)


class RestaurantUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    address: str | None = Field(None, min_length=1)
    city: str | None = Field(None, min_length=1)
    state: str | None = Field(None, min_length=2)
    zip_code: str | None = Field(None, min_length=3, max_length=10)
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    image_url: str | None = None
    cuisine_types: list[str] | None = None

    model_config = {"extra": "forbid"}


class RestaurantResponse(BaseModel):
    """Public view: no plan or quota fields."""

    id: uuid.UUID
    name: str
    description: str | None
    address: str
    city: str
    state: str
    zip_code: str
    latitude: float | None
    longitude: float | None
    phone: str | None
    email: str | None
    website: str | None
    image_url: str | None
    cuisine_types: list[str]
    rating: Decimal
    review_count: int
    is_verified: bool
    created_at: datetime | None
    updated_at: datetime | None
    distance: float | None = None

    model_config = {"from_attributes": True}


class OwnerRestaurantResponse(RestaurantResponse):
    subscription_plan: str
    subscription_status: str
    deal_limit: int
    deals_used_this_month: int


class RestaurantAnalyticsResponse(BaseModel):
    total_deals: int
    active_deals: int
    total_views: int
    total_clicks: int


# --- Dependencies ---

async def get_owned_restaurant(
    user: User = Depends(require_restaurant_owner),
    db: AsyncSession = Depends(get_db),
) -> Restaurant:
    """The authenticated owner's restaurant (NotFound if none)."""
    return await restaurant_service.get_by_owner(db, user.id)


def split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


# --- Public endpoints ---

@router.get("", response_model=list[RestaurantResponse])
async def search_restaurants(
    q: str | None = Query(None, description="Matches name or description"),
    cuisine_types: str | None = Query(None, description="Comma-separated cuisine types"),
    location: str | None = Query(None, description='ZIP code or "City, ST"'),
    radius: float | None = Query(None, gt=0),
    db: AsyncSession = Depends(get_db),
):
    location_filter = search_service.location_filter(location, radius)
    results = await search_service.search_restaurants(
        db, q, split_csv(cuisine_types), location=location_filter
    )
    return [
        RestaurantResponse.model_validate(r.restaurant).model_copy(
            update={"distance": round(r.distance, 2) if r.distance is not None else None}
        )
        for r in results
    ]


@router.get("/nearby", response_model=list[RestaurantResponse])
async def restaurants_nearby(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float = Query(10.0, gt=0, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Approximate (bounding-box) proximity listing, ordered by name."""
    restaurants = await search_service.get_restaurants_near_location(db, lat, lng, radius)
    return [RestaurantResponse.model_validate(r) for r in restaurants]


# --- Owner endpoints ---

@router.post("", response_model=OwnerRestaurantResponse, status_code=201)
async def register_restaurant(
    data: RestaurantCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    restaurant = await restaurant_service.create_restaurant(db, user, data.model_dump())
    return OwnerRestaurantResponse.model_validate(restaurant)


@router.get("/my", response_model=OwnerRestaurantResponse)
async def get_my_restaurant(restaurant: Restaurant = Depends(get_owned_restaurant)):
    return OwnerRestaurantResponse.model_validate(restaurant)


@router.patch("/my", response_model=OwnerRestaurantResponse)
async def update_my_restaurant(
    data: RestaurantUpdateRequest,
    restaurant: Restaurant = Depends(get_owned_restaurant),
    db: AsyncSession = Depends(get_db),
):
    updated = await restaurant_service.update_restaurant(
        db, restaurant, data.model_dump(exclude_unset=True)
    )
    return OwnerRestaurantResponse.model_validate(updated)


@router.get("/my/analytics", response_model=RestaurantAnalyticsResponse)
async def my_restaurant_analytics(
    restaurant: Restaurant = Depends(get_owned_restaurant),
    db: AsyncSession = Depends(get_db),
):
    analytics = await restaurant_service.get_restaurant_analytics(db, restaurant.id)
    return RestaurantAnalyticsResponse(
        total_deals=analytics.total_deals,
        active_deals=analytics.active_deals,
        total_views=analytics.total_views,
        total_clicks=analytics.total_clicks,
    )


@router.get("/{restaurant_id}", response_model=RestaurantResponse)
async def get_restaurant(restaurant_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    restaurant = await restaurant_service.get(db, restaurant_id)
    return RestaurantResponse.model_validate(restaurant)
