"""Favorites: per-user saved restaurants and deals.

A favorite points at exactly one restaurant or one deal. That is expressed
by :data:`FavoriteTarget` rather than two optional ids, so there is no
"both set" or "neither set" state to validate downstream.

Uniqueness is enforced by the partial unique indexes on ``favorites``; an
insert that violates them is translated into ``DuplicateFavorite``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import ClassVar, Union

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from localdeals.errors import DuplicateFavorite, NotFound, ValidationFailed
from localdeals.models import Deal, Favorite, Restaurant

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RestaurantTarget:
    id: uuid.UUID
    type: ClassVar[str] = "restaurant"


@dataclass(frozen=True, slots=True)
class DealTarget:
    id: uuid.UUID
    type: ClassVar[str] = "deal"


FavoriteTarget = Union[RestaurantTarget, DealTarget]


def make_target(favorite_type: str, item_id: uuid.UUID) -> FavoriteTarget:
    """Build a target from the ``(type, id)`` pair used in URLs."""
    if favorite_type == "restaurant":
        return RestaurantTarget(item_id)
    if favorite_type == "deal":
        return DealTarget(item_id)
    raise ValidationFailed(
        "Favorite type must be 'restaurant' or 'deal'",
        details={"type": favorite_type},
    )


def _target_clause(target: FavoriteTarget):
    if isinstance(target, RestaurantTarget):
        return (Favorite.type == "restaurant", Favorite.restaurant_id == target.id)
    return (Favorite.type == "deal", Favorite.deal_id == target.id)


class FavoritesService:
    """Membership, add and remove over a user's favorites."""

    async def is_favorite(
        self, session: AsyncSession, user_id: uuid.UUID, target: FavoriteTarget
    ) -> bool:
        result = await session.execute(
            select(Favorite.id)
            .where(Favorite.user_id == user_id, *_target_clause(target))
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def add(
        self, session: AsyncSession, user_id: uuid.UUID, target: FavoriteTarget
    ) -> Favorite:
        """Save *target* for the user.

        Raises ``NotFound`` if the restaurant or deal does not exist and
        ``DuplicateFavorite`` if it is already saved, including when a
        concurrent request wins the race to insert it.
        """
        model = Restaurant if isinstance(target, RestaurantTarget) else Deal
        exists = await session.execute(select(model.id).where(model.id == target.id))
        if exists.scalar_one_or_none() is None:
            raise NotFound(f"{target.type.capitalize()} not found")

        favorite = Favorite(
            user_id=user_id,
            type=target.type,
            restaurant_id=target.id if isinstance(target, RestaurantTarget) else None,
            deal_id=target.id if isinstance(target, DealTarget) else None,
        )
        try:
            async with session.begin_nested():
                session.add(favorite)
        except IntegrityError as exc:
            logger.info(
                "Duplicate favorite user=%s %s=%s", user_id, target.type, target.id
            )
            raise DuplicateFavorite() from exc

        await session.refresh(favorite)
        logger.info("Favorite added user=%s %s=%s", user_id, target.type, target.id)
        return favorite

    async def remove(
        self, session: AsyncSession, user_id: uuid.UUID, target: FavoriteTarget
    ) -> None:
        """Delete the favorite if present; a missing one is not an error."""
        await session.execute(
            delete(Favorite).where(Favorite.user_id == user_id, *_target_clause(target))
        )

    async def list_for_user(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        favorite_type: str | None = None,
    ) -> list[Favorite]:
        stmt = select(Favorite).where(Favorite.user_id == user_id)
        if favorite_type:
            stmt = stmt.where(Favorite.type == favorite_type)
        stmt = stmt.order_by(Favorite.created_at.desc())
        result = await session.execute(stmt)
        return list(result.scalars().all())
