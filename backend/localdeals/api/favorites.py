"""API routes for a user's favorites (token-protected)."""

import uuid
from datetime import datetime
from typing import Annotated, Literal, Union

from fastapi import APIRouter, Body, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from localdeals.auth import get_current_user
from localdeals.database import get_db
from localdeals.models import User
from localdeals.services.favorites import (
    DealTarget,
    FavoritesService,
    RestaurantTarget,
    make_target,
)

router = APIRouter(prefix="/favorites", tags=["favorites"])

favorites_service = FavoritesService()

FavoriteType = Literal["restaurant", "deal"]


# --- Schemas ---

class RestaurantFavoriteRequest(BaseModel):
    type: Literal["restaurant"]
    restaurant_id: uuid.UUID

    model_config = {"extra": "forbid"}

    def to_target(self) -> RestaurantTarget:
        return RestaurantTarget(self.restaurant_id)


class DealFavoriteRequest(BaseModel):
    type: Literal["deal"]
    deal_id: uuid.UUID

    model_config = {"extra": "forbid"}

    def to_target(self) -> DealTarget:
        return DealTarget(self.deal_id)


FavoriteRequest = Annotated[
    Union[RestaurantFavoriteRequest, DealFavoriteRequest],
    Body(discriminator="type"),
]


class FavoriteResponse(BaseModel):
    id: uuid.UUID
    type: str
    item_id: uuid.UUID
    restaurant_id: uuid.UUID | None
    deal_id: uuid.UUID | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


class FavoriteStatusResponse(BaseModel):
    type: str
    item_id: uuid.UUID
    is_favorite: bool


# --- Endpoints ---

@router.get("", response_model=list[FavoriteResponse])
async def list_favorites(
    type: FavoriteType | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await favorites_service.list_for_user(db, user.id, type)


@router.post("", response_model=FavoriteResponse, status_code=201)
async def add_favorite(
    data: FavoriteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    favorite = await favorites_service.add(db, user.id, data.to_target())
    return FavoriteResponse.model_validate(favorite)


@router.get("/{favorite_type}/{item_id}", response_model=FavoriteStatusResponse)
async def favorite_status(
    favorite_type: FavoriteType,
    item_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target = make_target(favorite_type, item_id)
    return FavoriteStatusResponse(
        type=favorite_type,
        item_id=item_id,
        is_favorite=await favorites_service.is_favorite(db, user.id, target),
    )


@router.delete("/{favorite_type}/{item_id}", status_code=204)
async def remove_favorite(
    favorite_type: FavoriteType,
    item_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await favorites_service.remove(db, user.id, make_target(favorite_type, item_id))
    return Response(status_code=204)
