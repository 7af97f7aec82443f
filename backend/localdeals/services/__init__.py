"""Application services."""

from localdeals.services.deals import DealService
from localdeals.services.favorites import FavoritesService
from localdeals.services.restaurants import RestaurantService
from localdeals.services.search import SearchService

__all__ = [
    "DealService",
    "FavoritesService",
    "RestaurantService",
    "SearchService",
]
