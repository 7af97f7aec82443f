"""Typed errors raised by the LocalDeals services.

Services raise these instead of leaking storage exceptions; the API layer
maps each one to an HTTP status in ``localdeals.main``.
"""

from typing import Any


class LocalDealsError(Exception):
    """Base class for every error the core reports to its callers."""

    status_code: int = 400

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidLocation(LocalDealsError):
    """A location string the gazetteer cannot resolve."""

    status_code = 400

    def __init__(self, location: str, examples: list[str]) -> None:
        super().__init__(
            f"Location not recognized: {location!r}",
            details={"location": location, "examples": examples},
        )
        self.location = location
        self.examples = examples


class DuplicateFavorite(LocalDealsError):
    status_code = 409

    def __init__(self, message: str = "Already favorited") -> None:
        super().__init__(message)


class DuplicateRestaurant(LocalDealsError):
    status_code = 409

    def __init__(self, message: str = "User already has a restaurant") -> None:
        super().__init__(message)


class NotFound(LocalDealsError):
    """Missing resource, or one owned by somebody else."""

    status_code = 404


class ValidationFailed(LocalDealsError):
    status_code = 422


class QuotaExceeded(LocalDealsError):
    status_code = 403

    def __init__(self, deal_limit: int, deals_used: int) -> None:
        super().__init__(
            "Monthly deal limit reached",
            details={"deal_limit": deal_limit, "deals_used_this_month": deals_used},
        )
        self.deal_limit = deal_limit
        self.deals_used = deals_used
