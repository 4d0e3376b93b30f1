from __future__ import annotations

import copy
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from common.geo import dead_reckon, haversine_nm
from common.types import StudioLocation
from feeds.adsb import AIRCRAFT_RADIUS_NM


DEMO_CENTER = StudioLocation(lat=40.73061, lon=-73.935242)

DEMO_AIRCRAFT: List[Dict[str, Any]] = [
    {"id": "a1b2c3", "lat": 40.7812, "lon": -73.9665, "flight": "DAL1423", "type": "A321",
     "category": "large-plane", "altitude": 8500, "speed": 280, "heading": 45},
    {"id": "a4f210", "lat": 40.6413, "lon": -73.7781, "flight": "JBU615", "type": "A320",
     "category": "large-plane", "altitude": 3200, "speed": 190, "heading": 310},
    {"id": "ab7c91", "lat": 40.7769, "lon": -73.8740, "flight": "AAL2201", "type": "B738",
     "category": "large-plane", "altitude": 2400, "speed": 170, "heading": 220},
    {"id": "ac0e55", "lat": 40.7061, "lon": -74.0087, "flight": "N72NY", "type": "EC35",
     "category": "helicopter", "altitude": 1100, "speed": 95, "heading": 90},
    {"id": "a9d3f0", "lat": 40.8501, "lon": -73.8330, "flight": "UAL88", "type": "B77W",
     "category": "heavy-aircraft", "altitude": 14000, "speed": 360, "heading": 180},
    {"id": "a61b07", "lat": 40.6000, "lon": -74.1200, "flight": "N512CP", "type": "C172",
     "category": "small-plane", "altitude": 2000, "speed": 105, "heading": 30},
]

DEMO_SATELLITES: Dict[str, Any] = {
    "info": {"category": "ANY", "transactionscount": 34, "satcount": 32},
    "above": [
        {"satid": 13890, "satname": "MOLNIYA 1-56", "intDesignator": "1983-019A",
         "launchDate": "1983-03-16", "satlat": 56.4963, "satlng": -10.8396, "satalt": 34952.2755},
        {"satid": 15398, "satname": "COSMOS 1610", "intDesignator": "1984-118A",
         "launchDate": "1984-11-15", "satlat": 48.5227, "satlng": 3.963, "satalt": 1011.6526},
        {"satid": 23907, "satname": "USA 120", "intDesignator": "1996-029B",
         "launchDate": "1996-05-12", "satlat": 48.7406, "satlng": 2.3055, "satalt": 910.2093},
        {"satid": 45387, "satname": "STARLINK-1274", "intDesignator": "2020-019AD",
         "launchDate": "2020-03-18", "satlat": 47.859, "satlng": 2.3022, "satalt": 498.4995},
        {"satid": 48214, "satname": "ONEWEB-0218", "intDesignator": "2021-031E",
         "launchDate": "2021-04-25", "satlat": 49.634, "satlng": 4.4368, "satalt": 1213.4881},
    ],
}


def advance_aircraft(
    aircraft: List[Dict[str, Any]],
    elapsed_s: float,
    center: StudioLocation = DEMO_CENTER,
    radius_nm: float = AIRCRAFT_RADIUS_NM,
) -> List[Dict[str, Any]]:
    """Move each aircraft along its heading and drop the ones that left the radius."""
    out: List[Dict[str, Any]] = []
    for ac in aircraft:
        moved = dict(ac)
        if ac.get("speed") and ac.get("heading") is not None:
            moved["lat"], moved["lon"] = dead_reckon(
                float(ac["lat"]), float(ac["lon"]), float(ac["speed"]), float(ac["heading"]), elapsed_s
            )
        if haversine_nm(center.lat, center.lon, moved["lat"], moved["lon"]) <= radius_nm:
            out.append(moved)
    return out


class DemoAircraftSimulator:
    """
    Keeps demo aircraft moving between polls. Positions advance by the wall-clock
    time since the previous snapshot; once every aircraft has left the area the
    initial set is restored.
    """

    def __init__(self, initial: Optional[List[Dict[str, Any]]] = None, clock: Callable[[], float] = time.time):
        self._initial = copy.deepcopy(initial if initial is not None else DEMO_AIRCRAFT)
        self._clock = clock
        self._lock = threading.Lock()
        self._aircraft: Optional[List[Dict[str, Any]]] = None
        self._last_t: Optional[float] = None

    def snapshot(self) -> List[Dict[str, Any]]:
        with self._lock:
            now = self._clock()
            if self._aircraft is None or self._last_t is None:
                self._aircraft = copy.deepcopy(self._initial)
                self._last_t = now
            elapsed = now - self._last_t
            if elapsed > 0:
                self._aircraft = advance_aircraft(self._aircraft, elapsed)
                self._last_t = now
            if not self._aircraft:
                self._aircraft = copy.deepcopy(self._initial)
            return copy.deepcopy(self._aircraft)
