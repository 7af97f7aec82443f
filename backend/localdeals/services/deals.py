"""Deal management for restaurant owners, plus public view/click tracking."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, Mapping

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from localdeals.errors import NotFound, QuotaExceeded, ValidationFailed
from localdeals.models import Deal, DealAnalytic, Restaurant
from localdeals.services.deal_lifecycle import compute_end_time

logger = logging.getLogger(__name__)

# Fields an owner may change after creation. Duration/end_time are fixed.
DEAL_EDITABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "category",
        "image_url",
        "original_price",
        "deal_price",
        "is_active",
        "max_redemptions",
    }
)

DEFAULT_ANALYTICS_DAYS = 30

QuotaPolicy = Callable[[AsyncSession, Restaurant], Awaitable[None]]


async def reserve_monthly_quota(session: AsyncSession, restaurant: Restaurant) -> None:
    """Default plan policy: at most ``deal_limit`` deals per month.

    The usage counter is bumped by a single conditional UPDATE, so two
    concurrent creates cannot both take the last slot.
    """
    result = await session.execute(
        update(Restaurant)
        .where(
            Restaurant.id == restaurant.id,
            Restaurant.deals_used_this_month < Restaurant.deal_limit,
        )
        .values(deals_used_this_month=Restaurant.deals_used_this_month + 1)
        .execution_options(synchronize_session=False)
    )
    await session.refresh(restaurant)
    if result.rowcount == 0:
        raise QuotaExceeded(restaurant.deal_limit, restaurant.deals_used_this_month or 0)


def check_prices(original_price: Decimal, deal_price: Decimal) -> None:
    if deal_price > original_price:
        raise ValidationFailed(
            "Deal price cannot exceed the original price",
            details={"original_price": str(original_price), "deal_price": str(deal_price)},
        )


class DealService:
    def __init__(self, quota_policy: QuotaPolicy = reserve_monthly_quota) -> None:
        self.quota_policy = quota_policy

    async def get(self, session: AsyncSession, deal_id: uuid.UUID) -> Deal:
        result = await session.execute(select(Deal).where(Deal.id == deal_id))
        deal = result.scalar_one_or_none()
        if deal is None:
            raise NotFound("Deal not found")
        return deal

    async def get_owned(
        self, session: AsyncSession, restaurant: Restaurant, deal_id: uuid.UUID
    ) -> Deal:
        """Fetch a deal belonging to *restaurant*; other owners' deals are NotFound."""
        result = await session.execute(
            select(Deal).where(Deal.id == deal_id, Deal.restaurant_id == restaurant.id)
        )
        deal = result.scalar_one_or_none()
        if deal is None:
            raise NotFound("Deal not found")
        return deal

    async def create_deal(
        self,
        session: AsyncSession,
        restaurant: Restaurant,
        data: Mapping[str, Any],
        *,
        now: datetime | None = None,
    ) -> Deal:
        """Create a deal lasting ``data["duration"]`` hours from *now*.

        Input is validated before the quota policy runs, so a rejected
        request never consumes a monthly slot.
        """
        now = now or datetime.now(timezone.utc)
        duration = int(data["duration"])
        end_time = compute_end_time(now, duration)

        fields = {k: v for k, v in data.items() if k in DEAL_EDITABLE_FIELDS}
        check_prices(Decimal(str(fields["original_price"])), Decimal(str(fields["deal_price"])))

        await self.quota_policy(session, restaurant)

        deal = Deal(
            restaurant_id=restaurant.id,
            start_time=now,
            end_time=end_time,
            **fields,
        )
        session.add(deal)
        await session.flush()
        await session.refresh(deal)
        logger.info(
            "Deal %s created for restaurant %s, ends %s",
            deal.id,
            restaurant.id,
            end_time.isoformat(),
        )
        return deal

    async def update_deal(
        self,
        session: AsyncSession,
        restaurant: Restaurant,
        deal_id: uuid.UUID,
        updates: Mapping[str, Any],
    ) -> Deal:
        deal = await self.get_owned(session, restaurant, deal_id)
        fields = {k: v for k, v in updates.items() if k in DEAL_EDITABLE_FIELDS}

        original = fields.get("original_price", deal.original_price)
        price = fields.get("deal_price", deal.deal_price)
        check_prices(Decimal(str(original)), Decimal(str(price)))

        for key, value in fields.items():
            setattr(deal, key, value)
        await session.flush()
        await session.refresh(deal)
        return deal

    async def delete_deal(
        self, session: AsyncSession, restaurant: Restaurant, deal_id: uuid.UUID
    ) -> None:
        deal = await self.get_owned(session, restaurant, deal_id)
        await session.delete(deal)
        await session.flush()
        logger.info("Deal %s deleted by restaurant %s", deal_id, restaurant.id)

    async def list_restaurant_deals(
        self, session: AsyncSession, restaurant_id: uuid.UUID
    ) -> list[Deal]:
        result = await session.execute(
            select(Deal)
            .where(Deal.restaurant_id == restaurant_id)
            .order_by(Deal.created_at.desc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    async def increment_view(
        self, session: AsyncSession, deal_id: uuid.UUID, now: datetime | None = None
    ) -> None:
        await session.execute(
            update(Deal)
            .where(Deal.id == deal_id)
            .values(view_count=Deal.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        await self._bump_daily(session, deal_id, "views", _utc_day(now))

    async def increment_click(
        self, session: AsyncSession, deal_id: uuid.UUID, now: datetime | None = None
    ) -> None:
        await session.execute(
            update(Deal)
            .where(Deal.id == deal_id)
            .values(click_count=Deal.click_count + 1)
            .execution_options(synchronize_session=False)
        )
        await self._bump_daily(session, deal_id, "clicks", _utc_day(now))

    async def _bump_daily(
        self, session: AsyncSession, deal_id: uuid.UUID, counter: str, day: date
    ) -> None:
        """Increment today's row for *deal_id*, creating it on first hit."""
        bump = (
            update(DealAnalytic)
            .where(DealAnalytic.deal_id == deal_id, DealAnalytic.date == day)
            .values({counter: getattr(DealAnalytic, counter) + 1})
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(bump)
        if result.rowcount:
            return

        values = {"deal_id": deal_id, "date": day, "views": 0, "clicks": 0, counter: 1}
        try:
            async with session.begin_nested():
                await session.execute(insert(DealAnalytic).values(**values))
        except IntegrityError:
            # A concurrent request created the row first.
            await session.execute(bump)

    async def get_deal_analytics(
        self,
        session: AsyncSession,
        restaurant: Restaurant,
        deal_id: uuid.UUID,
        days: int = DEFAULT_ANALYTICS_DAYS,
        now: datetime | None = None,
    ) -> list[DealAnalytic]:
        """Daily totals for an owned deal over the last *days* days, oldest first."""
        deal = await self.get_owned(session, restaurant, deal_id)
        since = _utc_day(now) - timedelta(days=days)
        result = await session.execute(
            select(DealAnalytic)
            .where(DealAnalytic.deal_id == deal.id, DealAnalytic.date >= since)
            .order_by(DealAnalytic.date)
        )
        return list(result.scalars().all())


def _utc_day(now: datetime | None) -> date:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(timezone.utc).date()
