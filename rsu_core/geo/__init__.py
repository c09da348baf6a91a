"""
Geo Module: Great-circle math on WGS84 latitude/longitude pairs.
"""

from .geo_math import (
    EARTH_RADIUS_M,
    haversine_m,
    haversine_matrix,
    initial_bearing_deg,
)

__all__ = [
    'EARTH_RADIUS_M',
    'haversine_m',
    'haversine_matrix',
    'initial_bearing_deg',
]
