"""SQLAlchemy models."""

from localdeals.models.deal import Deal
from localdeals.models.deal_analytic import DealAnalytic
from localdeals.models.favorite import Favorite
from localdeals.models.restaurant import Restaurant
from localdeals.models.user import User

__all__ = [
    "Deal",
    "DealAnalytic",
    "Favorite",
    "Restaurant",
    "User",
]
