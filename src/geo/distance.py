from __future__ import annotations

import math

from shared.constants import EARTH_RADIUS_KM


def great_circle_distance_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Great-circle distance (km) by the spherical law of cosines.

    Rounding can push the cosine slightly past 1 for identical or nearly
    antipodal points; it is clamped to [-1, 1] so the result is never NaN.
    """
    if lat1 == lat2 and lng1 == lng2:
        return 0.0
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dl = math.radians(lng2) - math.radians(lng1)
    cos_angle = math.cos(phi1) * math.cos(phi2) * math.cos(dl) + math.sin(
        phi1
    ) * math.sin(phi2)
    cos_angle = min(1.0, max(-1.0, cos_angle))
    return EARTH_RADIUS_KM * math.acos(cos_angle)
