from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from common.errors import UpstreamError
from common.geo import km_to_degrees
from common.types import StudioLocation
from feeds.http import get_json


SATELLITE_RADIUS_KM = 5000


class SatelliteClient:
    """space-api.danmade.app `satellites-above` adapter (radius is given to the API in degrees)."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        base_url: str = "https://space-api.danmade.app",
    ):
        self.session = session or requests.Session()
        self.timeout = float(timeout)
        self.base_url = base_url.rstrip("/")

    def satellites_above(self, loc: StudioLocation, radius_km: float = SATELLITE_RADIUS_KM) -> Dict[str, Any]:
        data = get_json(
            self.session,
            f"{self.base_url}/satellites-above",
            what="Satellite data",
            timeout=self.timeout,
            params={"lat": loc.lat, "lon": loc.lon, "radius": km_to_degrees(radius_km)},
        )
        if not isinstance(data, dict):
            raise UpstreamError("Failed to fetch Satellite data: expected a JSON object")
        return data


def satellite_count(data: Dict[str, Any]) -> int:
    info = data.get("info") or {}
    try:
        return int(info.get("satcount", len(data.get("above") or [])))
    except (TypeError, ValueError):
        return len(data.get("above") or [])
