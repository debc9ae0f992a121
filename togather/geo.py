"""
Coordinate math shared by the epicenter weighting, the grid search and venue ordering.
"""

from typing import List, Sequence

from geopy.distance import great_circle

from .config import EARTH_RADIUS_KM, GRID_OFFSETS
from .models import Coordinate


def _great_circle(a: Coordinate, b: Coordinate) -> great_circle:
    # Spherical earth with the mean radius, not geopy's default 6371.009 km
    return great_circle((a.lat, a.lng), (b.lat, b.lng), radius=EARTH_RADIUS_KM)


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in kilometers."""
    return _great_circle(a, b).km


def distance_m(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in meters."""
    return _great_circle(a, b).meters


def generate_grid(center: Coordinate, offsets: Sequence[float] = GRID_OFFSETS) -> List[Coordinate]:
    """
    Cartesian product of offsets x offsets (degrees) around center.
    Latitude offset is the outer loop, so the order is row by row from the south-west corner.
    """
    return [
        Coordinate(lat=center.lat + lat_delta, lng=center.lng + lng_delta)
        for lat_delta in offsets
        for lng_delta in offsets
    ]
