"""Retry geocoding for restaurants whose coordinates are still missing.

Restaurants are geocoded at registration and on owner address edits; this
script is the explicit trigger for everything else (e.g. after the
gazetteer gains new entries).

Run from the backend directory:
    PYTHONPATH=. python scripts/backfill_coordinates.py [--dry-run]
"""

import asyncio
import logging
import sys

from sqlalchemy import or_, select

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


async def main():
    from localdeals.database import async_session
    from localdeals.models import Restaurant
    from localdeals.services.restaurants import RestaurantService, resolve_or_keep_existing

    dry_run = "--dry-run" in sys.argv
    service = RestaurantService()

    async with async_session() as session:
        result = await session.execute(
            select(Restaurant).where(
                or_(Restaurant.latitude.is_(None), Restaurant.longitude.is_(None))
            )
        )
        restaurants = result.scalars().all()
        logger.info("Found %d restaurants without coordinates.", len(restaurants))

        resolved = 0
        for restaurant in restaurants:
            if dry_run:
                current = {
                    "zip_code": restaurant.zip_code,
                    "city": restaurant.city,
                    "state": restaurant.state,
                }
                outcome = resolve_or_keep_existing(restaurant, current, service.gazetteer)
            else:
                outcome = await service.refresh_coordinates(session, restaurant)

            if outcome.status == "resolved":
                resolved += 1
            else:
                logger.info(
                    "Still unresolved: %s (%s, %s %s)",
                    restaurant.name,
                    restaurant.city,
                    restaurant.state,
                    restaurant.zip_code,
                )

        if not dry_run:
            await session.commit()

        logger.info(
            "%s %d of %d restaurants.",
            "Would geocode" if dry_run else "Geocoded",
            resolved,
            len(restaurants),
        )


if __name__ == "__main__":
    asyncio.run(main())
