"""API routes for deals: public search and owner management."""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from localdeals.api.restaurants import get_owned_restaurant, split_csv
from localdeals.config import get_settings
from localdeals.database import get_db
from localdeals.models import Deal, Restaurant
from localdeals.services.deal_lifecycle import (
    MAX_DURATION_HOURS,
    MIN_DURATION_HOURS,
    format_remaining_time,
    is_currently_active,
)
from localdeals.services.deals import DEFAULT_ANALYTICS_DAYS, DealService
from localdeals.services.search import DealSearchResult, SearchService

router = APIRouter(prefix="/deals", tags=["deals"])

deal_service = DealService()
search_service = SearchService()


# --- Schemas ---

class DealCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: str | None = None
    category: str | None = None
    image_url: str | None = None
    original_price: Decimal = Field(..., gt=0)
    deal_price: Decimal = Field(..., ge=0)
    duration: int = Field(..., ge=MIN_DURATION_HOURS, le=MAX_DURATION_HOURS)
    is_active: bool = True
    max_redemptions: int | None = Field(None, ge=1)

    @model_validator(mode="after")
    def _deal_price_not_above_original(self):
        if self.deal_price > self.original_price:
            raise ValueError("deal_price cannot exceed original_price")
        return self


class DealUpdateRequest(BaseModel):
    """Owner edits. Duration and end time cannot change after creation."""

    title: str | None = Field(None, min_length=1)
    description: str | None = None
    category: str | None = None
    image_url: str | None = None
    original_price: Decimal | None = Field(None, gt=0)
    deal_price: Decimal | None = Field(None, ge=0)
    is_active: bool | None = None
    max_redemptions: int | None = Field(None, ge=1)

    model_config = {"extra": "forbid"}


class DealResponse(BaseModel):
    id: uuid.UUID
    restaurant_id: uuid.UUID
    title: str
    description: str | None
    category: str | None
    image_url: str | None
    original_price: Decimal
    deal_price: Decimal
    start_time: datetime | None
    end_time: datetime
    is_active: bool
    max_redemptions: int | None
    current_redemptions: int
    view_count: int
    click_count: int
    is_currently_active: bool
    time_remaining: str


class DealSearchResponse(DealResponse):
    restaurant_name: str
    restaurant_phone: str | None
    restaurant_address: str
    restaurant_city: str
    restaurant_state: str
    cuisine_types: list[str]
    distance: float | None = None


class DealAnalyticsResponse(BaseModel):
    date: date
    views: int
    clicks: int

    model_config = {"from_attributes": True}


def _deal_fields(deal: Deal, now: datetime) -> dict:
    return dict(
        id=deal.id,
        restaurant_id=deal.restaurant_id,
        title=deal.title,
        description=deal.description,
        category=deal.category,
        image_url=deal.image_url,
        original_price=deal.original_price,
        deal_price=deal.deal_price,
        start_time=deal.start_time,
        end_time=deal.end_time,
        is_active=deal.is_active,
        max_redemptions=deal.max_redemptions,
        current_redemptions=deal.current_redemptions or 0,
        view_count=deal.view_count or 0,
        click_count=deal.click_count or 0,
        is_currently_active=is_currently_active(deal, now),
        time_remaining=format_remaining_time(deal, now),
    )


def build_deal_response(deal: Deal, now: datetime | None = None) -> DealResponse:
    return DealResponse(**_deal_fields(deal, now or datetime.now(timezone.utc)))


def build_search_response(result: DealSearchResult, now: datetime) -> DealSearchResponse:
    return DealSearchResponse(
        **_deal_fields(result.deal, now),
        restaurant_name=result.restaurant_name,
        restaurant_phone=result.restaurant_phone,
        restaurant_address=result.restaurant_address,
        restaurant_city=result.restaurant_city,
        restaurant_state=result.restaurant_state,
        cuisine_types=result.cuisine_types,
        distance=round(result.distance, 2) if result.distance is not None else None,
    )


# --- Public endpoints ---

@router.get("", response_model=list[DealSearchResponse])
async def search_deals(
    q: str | None = Query(None, description="Matches deal title, description or restaurant name"),
    max_price: Decimal | None = Query(None, ge=0),
    cuisine_types: str | None = Query(None, description="Comma-separated cuisine types"),
    location: str | None = Query(None, description='ZIP code or "City, ST"'),
    radius: float | None = Query(None, gt=0, description="Radius in miles"),
    limit: int = Query(get_settings().search_result_limit, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    now = datetime.now(timezone.utc)
    location_filter = search_service.location_filter(location, radius)
    results = await search_service.search_deals(
        db,
        q,
        max_price=max_price,
        cuisine_types=split_csv(cuisine_types),
        location=location_filter,
        now=now,
        limit=limit,
        offset=offset,
    )
    return [build_search_response(r, now) for r in results]


# --- Owner endpoints ---

@router.get("/my", response_model=list[DealResponse])
async def list_my_deals(
    restaurant: Restaurant = Depends(get_owned_restaurant),
    db: AsyncSession = Depends(get_db),
):
    deals = await deal_service.list_restaurant_deals(db, restaurant.id)
    now = datetime.now(timezone.utc)
    return [build_deal_response(d, now) for d in deals]


@router.post("", response_model=DealResponse, status_code=201)
async def create_deal(
    data: DealCreateRequest,
    restaurant: Restaurant = Depends(get_owned_restaurant),
    db: AsyncSession = Depends(get_db),
):
    deal = await deal_service.create_deal(db, restaurant, data.model_dump())
    return build_deal_response(deal)


@router.patch("/{deal_id}", response_model=DealResponse)
async def update_deal(
    deal_id: uuid.UUID,
    data: DealUpdateRequest,
    restaurant: Restaurant = Depends(get_owned_restaurant),
    db: AsyncSession = Depends(get_db),
):
    deal = await deal_service.update_deal(
        db, restaurant, deal_id, data.model_dump(exclude_unset=True)
    )
    return build_deal_response(deal)


@router.delete("/{deal_id}", status_code=204)
async def delete_deal(
    deal_id: uuid.UUID,
    restaurant: Restaurant = Depends(get_owned_restaurant),
    db: AsyncSession = Depends(get_db),
):
    await deal_service.delete_deal(db, restaurant, deal_id)
    return Response(status_code=204)


@router.get("/{deal_id}/analytics", response_model=list[DealAnalyticsResponse])
async def deal_analytics(
    deal_id: uuid.UUID,
    days: int = Query(DEFAULT_ANALYTICS_DAYS, ge=1, le=365),
    restaurant: Restaurant = Depends(get_owned_restaurant),
    db: AsyncSession = Depends(get_db),
):
    """Daily views and clicks for one of the owner's deals, oldest first."""
    return await deal_service.get_deal_analytics(db, restaurant, deal_id, days)


# --- Public detail + tracking ---

@router.get("/{deal_id}", response_model=DealResponse)
async def get_deal(deal_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    deal = await deal_service.get(db, deal_id)
    await deal_service.increment_view(db, deal.id)
    await db.refresh(deal)
    return build_deal_response(deal)


@router.post("/{deal_id}/click", status_code=204)
async def track_click(deal_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    deal = await deal_service.get(db, deal_id)
    await deal_service.increment_click(db, deal.id)
    return Response(status_code=204)
