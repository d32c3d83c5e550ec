"""Spatial subpackage — coordinates and proximity query parameters."""

from dropoffs.spatial.geo import Coordinate, ProximityQuery, miles_to_meters

__all__ = [
    "Coordinate",
    "ProximityQuery",
    "miles_to_meters",
]
