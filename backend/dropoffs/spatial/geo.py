"""
Geographic value types
======================
Inputs to the proximity search.

Point constructors take **X before Y**, i.e. longitude before latitude.
Swapping them lands the search near the antipodal meridian, so every
conversion to a geometry goes through ``Coordinate.to_point``.

All query points are WGS 84 (SRID 4326), which is what PostGIS assumes
for ``geography`` values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from shapely.geometry import Point

from dropoffs.errors import InvalidCoordinateError

WGS84_SRID = 4326
METERS_PER_MILE = 1609


def miles_to_meters(miles: float) -> float:
    """Convert miles to meters with the fixed 1609 m/mile constant."""
    return miles * METERS_PER_MILE


def _parse_degrees(raw: str | float, name: str) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise InvalidCoordinateError(f"{name} must be a decimal number, got {raw!r}") from None
    if not math.isfinite(value):
        raise InvalidCoordinateError(f"{name} must be finite, got {raw!r}")
    return value


# ── Coordinate ───────────────────────────────────────────────────
@dataclass(frozen=True, slots=True)
class Coordinate:
    """A WGS 84 position.  No range checks beyond what the store enforces."""

    latitude: float
    longitude: float

    @classmethod
    def parse(cls, latitude: str | float, longitude: str | float) -> Coordinate:
        """Build a coordinate from raw request values.

        Raises
        ------
        InvalidCoordinateError
            If either part is not a finite number.
        """
        return cls(
            latitude=_parse_degrees(latitude, "centerLat"),
            longitude=_parse_degrees(longitude, "centerLng"),
        )

    def to_point(self) -> Point:
        """Shapely point in (x=longitude, y=latitude) order."""
        return Point(self.longitude, self.latitude)

    def to_ewkt(self) -> str:
        """EWKT string for PostGIS ``ST_GeogFromText``."""
        return f"SRID={WGS84_SRID};{self.to_point().wkt}"


# ── Proximity query ──────────────────────────────────────────────
@dataclass(frozen=True, slots=True)
class ProximityQuery:
    """A bounded nearest-neighbour search against one spatial table."""

    center: Coordinate
    radius_meters: float
    table_name: str
    row_limit: int
    id_column: str = "ogc_fid"
    geometry_column: str = "wkb_geometry"
    schema: str | None = None

    def __post_init__(self) -> None:
        if not self.radius_meters > 0:
            raise ValueError(f"radius_meters must be > 0, got {self.radius_meters}")
        if self.row_limit <= 0:
            raise ValueError(f"row_limit must be > 0, got {self.row_limit}")
        if not self.table_name:
            raise ValueError("table_name must not be empty")
