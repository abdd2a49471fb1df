import math
from typing import Iterable, Optional, Tuple


EARTH_RADIUS_M = 6371008.8

def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)
    dlat, dlon = rlat2 - rlat1, rlon2 - rlon1
    a = math.sin(dlat/2)**2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon/2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c

def path_length_m(fixes: Iterable[Tuple[float, float]]) -> float:
    """Sum of the legs between consecutive (lat, lon) fixes."""
    total = 0.0
    prev: Optional[Tuple[float, float]] = None
    for fix in fixes:
        if prev is not None:
            total += haversine_m(prev[0], prev[1], fix[0], fix[1])
        prev = fix
    return total
