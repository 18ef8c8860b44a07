"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from ..config import settings
from ..models.domain import Coordinates


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return settings.earth_radius_miles * c


def distance_miles(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance in miles between two coordinate pairs."""

    return haversine_miles(a.lat, a.lng, b.lat, b.lng)


def path_distance_miles(start: Coordinates, points: Sequence[Coordinates]) -> float:
    """Sum of consecutive leg distances from ``start`` through ``points``."""

    total = 0.0
    previous = start
    for point in points:
        total += distance_miles(previous, point)
        previous = point
    return total
