"""
Great-circle distance between two coordinates.
"""

import math
from typing import Mapping

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: Mapping[str, float], b: Mapping[str, float]) -> float:
    """
    Distance in kilometers between two {lat, lng} points (degrees) using the Haversine formula.

    Symmetric, zero for identical points, and about pi * R for antipodal points.
    """
    phi1 = math.radians(a["lat"])
    phi2 = math.radians(b["lat"])
    dphi = math.radians(b["lat"] - a["lat"])
    dlambda = math.radians(b["lng"] - a["lng"])
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # Rounding can push h a hair past 1 for antipodal points
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
