"""Static gazetteer geocoding.

Maps a free-text location (5-digit ZIP or "City, ST") to coordinates using
two closed lookup tables. Anything outside the tables is unresolvable; that
is a user-facing "location not recognized" condition, not a failure.

The tables are read-only. Callers receive a :class:`Gazetteer` instance
(``default_gazetteer()``) so a live geocoding backend can replace it without
touching them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Mapping

from localdeals.errors import InvalidLocation

logger = logging.getLogger(__name__)

_ZIP_RE = re.compile(r"^\d{5}$")
_CITY_STATE_RE = re.compile(r"^(.+),\s*([a-z]{2})$")


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lng: float


# ---------------------------------------------------------------------------
# Lookup tables (selected US metros)
# ---------------------------------------------------------------------------

ZIP_COORDINATES: tuple[tuple[str, tuple[float, float]], ...] = (
    ("10001", (40.7505, -73.9934)),  # New York, NY
    ("10002", (40.7209, -73.9896)),
    ("10003", (40.7316, -73.9891)),
    ("90210", (34.0901, -118.4065)),  # Beverly Hills, CA
    ("90211", (34.0836, -118.4006)),
    ("60601", (41.8827, -87.6233)),  # Chicago, IL
    ("60602", (41.8799, -87.6338)),
    ("75201", (32.7767, -96.7970)),  # Dallas, TX
    ("75202", (32.7767, -96.8089)),
    ("75035", (32.9537, -96.8236)),  # Frisco, TX
    ("33101", (25.7617, -80.1918)),  # Miami, FL
    ("33102", (25.7743, -80.1937)),
    ("94102", (37.7849, -122.4094)),  # San Francisco, CA
    ("94103", (37.7749, -122.4194)),
    ("98101", (47.6097, -122.3331)),  # Seattle, WA
    ("98102", (47.6205, -122.3212)),
    ("30309", (33.7490, -84.3880)),  # Atlanta, GA
    ("30310", (33.7490, -84.4110)),
    ("02101", (42.3601, -71.0589)),  # Boston, MA
    ("02102", (42.3584, -71.0598)),
    ("19101", (39.9526, -75.1652)),  # Philadelphia, PA
    ("19102", (39.9500, -75.1667)),
    ("20001", (38.9072, -77.0369)),  # Washington, DC
    ("20002", (38.8973, -76.9951)),
    ("80201", (39.7392, -104.9903)),  # Denver, CO
    ("80202", (39.7545, -105.0078)),
)

CITY_STATE_COORDINATES: tuple[tuple[str, tuple[float, float]], ...] = (
    ("new york,ny", (40.7128, -74.0060)),
    ("los angeles,ca", (34.0522, -118.2437)),
    ("chicago,il", (41.8781, -87.6298)),
    ("houston,tx", (29.7604, -95.3698)),
    ("phoenix,az", (33.4484, -112.0740)),
    ("philadelphia,pa", (39.9526, -75.1652)),
    ("san antonio,tx", (29.4241, -98.4936)),
    ("san diego,ca", (32.7157, -117.1611)),
    ("dallas,tx", (32.7767, -96.7970)),
    ("san jose,ca", (37.3382, -121.8863)),
    ("austin,tx", (30.2672, -97.7431)),
    ("jacksonville,fl", (30.3322, -81.6557)),
    ("fort worth,tx", (32.7555, -97.3308)),
    ("columbus,oh", (39.9612, -82.9988)),
    ("san francisco,ca", (37.7749, -122.4194)),
    ("charlotte,nc", (35.2271, -80.8431)),
    ("indianapolis,in", (39.7684, -86.1581)),
    ("seattle,wa", (47.6062, -122.3321)),
    ("denver,co", (39.7392, -104.9903)),
    ("boston,ma", (42.3601, -71.0589)),
    ("detroit,mi", (42.3314, -83.0458)),
    ("nashville,tn", (36.1627, -86.7816)),
    ("memphis,tn", (35.1495, -90.0490)),
    ("portland,or", (45.5152, -122.6784)),
    ("oklahoma city,ok", (35.4676, -97.5164)),
    ("las vegas,nv", (36.1699, -115.1398)),
    ("baltimore,md", (39.2904, -76.6122)),
    ("louisville,ky", (38.2527, -85.7585)),
    ("milwaukee,wi", (43.0389, -87.9065)),
    ("albuquerque,nm", (35.0844, -106.6504)),
    ("tucson,az", (32.2226, -110.9747)),
    ("fresno,ca", (36.7378, -119.7871)),
    ("sacramento,ca", (38.5816, -121.4944)),
    ("mesa,az", (33.4152, -111.8315)),
    ("kansas city,mo", (39.0997, -94.5786)),
    ("atlanta,ga", (33.7490, -84.3880)),
    ("miami,fl", (25.7617, -80.1918)),
    ("raleigh,nc", (35.7796, -78.6382)),
    ("omaha,ne", (41.2565, -95.9345)),
    ("miami beach,fl", (25.7907, -80.1300)),
    ("virginia beach,va", (36.8529, -75.9780)),
    ("oakland,ca", (37.8044, -122.2711)),
    ("minneapolis,mn", (44.9778, -93.2650)),
    ("tulsa,ok", (36.1540, -95.9928)),
    ("arlington,tx", (32.7357, -97.1081)),
    ("new orleans,la", (29.9511, -90.0715)),
    ("wichita,ks", (37.6872, -97.3301)),
    ("cleveland,oh", (41.4993, -81.6944)),
    ("tampa,fl", (27.9506, -82.4572)),
    ("bakersfield,ca", (35.3733, -119.0187)),
    ("aurora,co", (39.7294, -104.8319)),
    ("anaheim,ca", (33.8366, -117.9143)),
    ("honolulu,hi", (21.3099, -157.8581)),
    ("santa ana,ca", (33.7455, -117.8677)),
    ("riverside,ca", (33.9533, -117.3962)),
    ("corpus christi,tx", (27.8006, -97.3964)),
    ("lexington,ky", (38.0406, -84.5037)),
    ("stockton,ca", (37.9577, -121.2908)),
    ("henderson,nv", (36.0395, -114.9817)),
    ("saint paul,mn", (44.9537, -93.0900)),
    ("st. louis,mo", (38.6270, -90.1994)),
    ("cincinnati,oh", (39.1031, -84.5120)),
    ("pittsburgh,pa", (40.4406, -79.9959)),
    ("greensboro,nc", (36.0726, -79.7920)),
    ("plano,tx", (33.0198, -96.6989)),
    ("frisco,tx", (33.1507, -96.8236)),
    ("lincoln,ne", (40.8136, -96.7026)),
    ("anchorage,ak", (61.2181, -149.9003)),
    ("buffalo,ny", (42.8864, -78.8784)),
    ("fort wayne,in", (41.0793, -85.1394)),
    ("jersey city,nj", (40.7178, -74.0431)),
    ("chula vista,ca", (32.6401, -117.0842)),
    ("orlando,fl", (28.5383, -81.3792)),
    ("norfolk,va", (36.8468, -76.2852)),
    ("chandler,az", (33.3062, -111.8413)),
    ("laredo,tx", (27.5306, -99.4803)),
    ("madison,wi", (43.0731, -89.4012)),
    ("lubbock,tx", (33.5779, -101.8552)),
    ("winston-salem,nc", (36.0999, -80.2442)),
    ("garland,tx", (32.9126, -96.6389)),
    ("glendale,az", (33.5387, -112.1860)),
    ("hialeah,fl", (25.8576, -80.2781)),
    ("reno,nv", (39.5296, -119.8138)),
    ("baton rouge,la", (30.4515, -91.1871)),
    ("irvine,ca", (33.6846, -117.8265)),
    ("chesapeake,va", (36.7682, -76.2875)),
    ("irving,tx", (32.8140, -96.9489)),
    ("scottsdale,az", (33.4942, -111.9261)),
    ("north las vegas,nv", (36.1989, -115.1175)),
    ("fremont,ca", (37.5485, -121.9886)),
    ("gilbert,az", (33.3528, -111.7890)),
    ("san bernardino,ca", (34.1083, -117.2898)),
    ("boise,id", (43.6150, -116.2023)),
    ("birmingham,al", (33.5207, -86.8025)),
)

EXAMPLE_FORMATS: tuple[str, ...] = ("75035", "Dallas, TX", "Seattle")


def _freeze(rows: Iterable[tuple[str, tuple[float, float]]]) -> Mapping[str, Coordinate]:
    return MappingProxyType({key: Coordinate(lat, lng) for key, (lat, lng) in rows})


class Gazetteer:
    """Read-only ZIP and city/state lookup."""

    def __init__(
        self,
        zip_table: Mapping[str, Coordinate],
        city_state_table: Mapping[str, Coordinate],
        examples: Iterable[str] = EXAMPLE_FORMATS,
    ) -> None:
        self._zips = MappingProxyType(dict(zip_table))
        self._cities = MappingProxyType(dict(city_state_table))
        self._examples = tuple(examples)

    @property
    def zip_codes(self) -> Mapping[str, Coordinate]:
        return self._zips

    @property
    def city_states(self) -> Mapping[str, Coordinate]:
        return self._cities

    def example_formats(self) -> list[str]:
        return list(self._examples)

    def resolve(self, location: str | None) -> Coordinate | None:
        """Resolve *location* to a coordinate, or ``None`` when unknown.

        Accepted shapes, tried in order:

        * exactly five digits: ZIP table lookup
        * ``"<city>, <st>"``: city/state table lookup
        * anything else: first city/state key starting with ``"<input>,"``,
          in table order
        """
        if not location:
            return None

        normalized = location.strip().lower()
        if not normalized:
            return None

        if _ZIP_RE.match(normalized):
            return self._zips.get(normalized)

        match = _CITY_STATE_RE.match(normalized)
        if match:
            key = f"{match.group(1).strip()},{match.group(2).strip()}"
            return self._cities.get(key)

        prefix = normalized + ","
        for key, coordinate in self._cities.items():
            if key.startswith(prefix):
                return coordinate

        return None

    def resolve_address(
        self,
        zip_code: str | None,
        city: str | None,
        state: str | None,
    ) -> Coordinate | None:
        """Geocode a postal address: ZIP first, then ``"city, state"``."""
        if zip_code:
            coordinate = self.resolve(zip_code)
            if coordinate is not None:
                return coordinate
        if city and state:
            return self.resolve(f"{city}, {state}")
        return None

    def require(self, location: str) -> Coordinate:
        """Like :meth:`resolve` but raises :class:`InvalidLocation`."""
        coordinate = self.resolve(location)
        if coordinate is None:
            logger.info("Unresolvable location %r", location)
            raise InvalidLocation(location, self.example_formats())
        return coordinate


@lru_cache
def default_gazetteer() -> Gazetteer:
    return Gazetteer(_freeze(ZIP_COORDINATES), _freeze(CITY_STATE_COORDINATES))


def resolve(location: str | None) -> Coordinate | None:
    """Resolve against the built-in tables."""
    return default_gazetteer().resolve(location)
