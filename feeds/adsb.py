from __future__ import annotations

"""
ADS-B adapters for the overhead-aircraft endpoints.

- aircraft_near(): opendata.adsb.fi, airborne traffic only, trimmed to the
  fields the display uses ({id, lat, lon, flight, type, category, altitude, speed, heading})
- raw_near(): api.adsb.lol, returned untouched
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from common.types import StudioLocation
from feeds.http import get_json


log = logging.getLogger(__name__)

AIRCRAFT_RADIUS_NM = 25
AIRPLANES_RADIUS_NM = 100

# ADS-B emitter category → display class
CATEGORY_MAP: Dict[str, str] = {
    # fixed wing
    "A0": "unknown",
    "A1": "small-plane",
    "A2": "medium-plane",
    "A3": "large-plane",
    "A4": "jumbo-jet",
    "A5": "heavy-aircraft",
    "A6": "fighter-jet",
    # rotorcraft
    "A7": "helicopter",
    # other
    "B0": "unknown",
    "B1": "glider",
    "B2": "balloon",
    "B3": "parachute",
    "B4": "ultralight",
    "B5": "unknown",
    "B6": "drone",
    "B7": "rocket",
    # surface
    "C0": "ground-vehicle",
    "C1": "ground-vehicle",
    "C2": "ground-vehicle",
    "C3": "ground-vehicle",
}


def parse_category(code: Optional[str]) -> str:
    if not code:
        return "unknown"
    return CATEGORY_MAP.get(str(code), "unknown")


def normalise_aircraft(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Display record for one airborne aircraft; None for ground/unknown altitude."""
    alt = raw.get("alt_baro")
    # adsb.fi reports "ground" as a string
    if isinstance(alt, bool) or not isinstance(alt, (int, float)) or alt <= 0:
        return None
    flight = raw.get("flight")
    return {
        "id": raw.get("hex"),
        "lat": raw.get("lat"),
        "lon": raw.get("lon"),
        "flight": flight.strip() if isinstance(flight, str) else None,
        "type": raw.get("t"),
        "category": parse_category(raw.get("category")),
        "altitude": alt,
        "speed": raw.get("gs"),
        "heading": raw.get("track"),
    }


class AdsbClient:
    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        fi_base_url: str = "https://opendata.adsb.fi/api/v2",
        lol_base_url: str = "https://api.adsb.lol/v2",
    ):
        self.session = session or requests.Session()
        self.timeout = float(timeout)
        self.fi_base_url = fi_base_url.rstrip("/")
        self.lol_base_url = lol_base_url.rstrip("/")

    def aircraft_near(self, loc: StudioLocation, radius_nm: int = AIRCRAFT_RADIUS_NM) -> List[Dict[str, Any]]:
        url = f"{self.fi_base_url}/lat/{loc.lat}/lon/{loc.lon}/dist/{radius_nm}"
        data = get_json(self.session, url, what="Aircraft data", timeout=self.timeout)
        raw = data.get("aircraft") if isinstance(data, dict) else None
        out: List[Dict[str, Any]] = []
        for ac in raw or []:
            if not isinstance(ac, dict):
                continue
            rec = normalise_aircraft(ac)
            if rec is not None:
                out.append(rec)
        log.debug("adsb.fi returned %d aircraft, %d airborne", len(raw or []), len(out))
        return out

    def raw_near(self, loc: StudioLocation, radius_nm: int = AIRPLANES_RADIUS_NM) -> Any:
        url = f"{self.lol_base_url}/lat/{loc.lat}/lon/{loc.lon}/dist/{radius_nm}"
        return get_json(self.session, url, what="airplane data", timeout=self.timeout)
