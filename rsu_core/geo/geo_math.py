"""
Great-circle distance and bearing.

Spherical Earth model (mean radius), adequate for the tens-of-metres
separations the proximity warnings care about.
"""

import math
from typing import Sequence

import numpy as np

EARTH_RADIUS_M = 6371000.0


def haversine_m(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    radius_m: float = EARTH_RADIUS_M
) -> float:
    """
    Surface distance between two points using the haversine formula.

    Args:
        lat1, lon1: First point (degrees)
        lat2, lon2: Second point (degrees)
        radius_m: Sphere radius (meters)

    Returns:
        Distance in meters
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2 +
        math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
        math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return radius_m * c


def initial_bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Initial bearing from point 1 towards point 2.

    Returns:
        Bearing in degrees clockwise from north, in [0, 360)
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_lon = math.radians(lon2 - lon1)

    y = math.sin(d_lon) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lon)

    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def haversine_matrix(
    lats: Sequence[float],
    lons: Sequence[float],
    radius_m: float = EARTH_RADIUS_M
) -> np.ndarray:
    """
    Pairwise haversine distances for a set of points.

    Args:
        lats: Latitudes (degrees), length n
        lons: Longitudes (degrees), length n
        radius_m: Sphere radius (meters)

    Returns:
        (n, n) array of distances in meters; the diagonal is zero
    """
    lat = np.radians(np.asarray(lats, dtype=float))
    lon = np.radians(np.asarray(lons, dtype=float))

    d_lat = lat[np.newaxis, :] - lat[:, np.newaxis]
    d_lon = lon[np.newaxis, :] - lon[:, np.newaxis]

    a = (
        np.sin(d_lat / 2) ** 2 +
        np.cos(lat)[:, np.newaxis] * np.cos(lat)[np.newaxis, :] *
        np.sin(d_lon / 2) ** 2
    )
    a = np.clip(a, 0.0, 1.0)  # rounding near antipodes
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return radius_m * c
