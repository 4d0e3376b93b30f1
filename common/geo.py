from __future__ import annotations

from typing import Tuple
import math


_EARTH_RADIUS_M = 6371008.8   # mean Earth radius (m)
_M_PER_NM = 1852.0


# -------------------------
# Great-circle distance
# -------------------------
def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine great-circle distance on WGS84 sphere approximation."""
    p1 = math.radians(lat1)
    p2 = math.radians(lat2)
    dphi = p2 - p1
    dl = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2.0) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2.0) ** 2
    return 2 * _EARTH_RADIUS_M * math.asin(math.sqrt(a))


def haversine_nm(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in nautical miles."""
    return haversine_m(lat1, lon1, lat2, lon2) / _M_PER_NM


# -------------------------
# Dead reckoning
# -------------------------
def dead_reckon(lat: float, lon: float, speed_kt: float, heading_deg: float, elapsed_s: float) -> Tuple[float, float]:
    """
    Advance a position along a constant heading for `elapsed_s` seconds.

    Flat-earth step: 1 nm = 1/60 deg of latitude; longitude scaled by cos(lat).
    Good enough for the few-minute gaps between display polls.
    """
    dist_nm = (speed_kt / 3600.0) * elapsed_s
    hdg = math.radians(heading_deg)
    dlat = dist_nm * math.cos(hdg) / 60.0
    coslat = math.cos(math.radians(lat))
    dlon = 0.0 if abs(coslat) < 1e-9 else dist_nm * math.sin(hdg) / (60.0 * coslat)
    return lat + dlat, lon + dlon


def km_to_degrees(km: float) -> float:
    """Rough conversion used for provider search radii (~111 km per degree)."""
    return km / 111.0
