"""API routes exposing the gazetteer and distance helpers."""

from fastapi import APIRouter, Query
from pydantic import BaseModel

from localdeals.services.distance import distance_miles
from localdeals.services.geocoding import default_gazetteer

router = APIRouter(prefix="/locations", tags=["locations"])


class ResolvedLocationResponse(BaseModel):
    location: str
    lat: float
    lng: float


class DistanceResponse(BaseModel):
    origin: ResolvedLocationResponse
    destination: ResolvedLocationResponse
    miles: float


@router.get("/resolve", response_model=ResolvedLocationResponse)
async def resolve_location(
    location: str = Query(..., min_length=1, description='ZIP code or "City, ST"'),
):
    coordinate = default_gazetteer().require(location)
    return ResolvedLocationResponse(location=location, lat=coordinate.lat, lng=coordinate.lng)


@router.get("/distance", response_model=DistanceResponse)
async def location_distance(
    origin: str = Query(..., min_length=1),
    destination: str = Query(..., min_length=1),
):
    """Great-circle miles between two gazetteer locations."""
    gazetteer = default_gazetteer()
    a = gazetteer.require(origin)
    b = gazetteer.require(destination)
    return DistanceResponse(
        origin=ResolvedLocationResponse(location=origin, lat=a.lat, lng=a.lng),
        destination=ResolvedLocationResponse(location=destination, lat=b.lat, lng=b.lng),
        miles=round(distance_miles(a, b), 2),
    )
