from __future__ import annotations

import argparse
import copy
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import uvicorn
import yaml
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from common.errors import ApiError, ConfigurationError, UpstreamError
from common.logging_setup import setup_logging
from common.types import StudioLocation
from common.utils import iso_now_ms
from earth_imagery.cache import EarthImageCache
from earth_imagery.epic_client import EpicClient
from earth_imagery.freshness import FreshnessPolicy
from feeds.adsb import AIRCRAFT_RADIUS_NM, AdsbClient
from feeds.demo import DEMO_CENTER, DEMO_SATELLITES, DemoAircraftSimulator
from feeds.satellites import SATELLITE_RADIUS_KM, SatelliteClient, satellite_count
from gateway.auth import Access, ApiKeyGuard, require_access


log = logging.getLogger(__name__)

EARTH_PREFIX = "/WholeEarthSatelliteImage"

DEFAULT_CONFIG: Dict[str, Any] = {
    "server": {"host": "0.0.0.0", "port": 3108},
    "auth": {"api_key": None, "demo_api_key": None},
    "studio": {"lat": None, "lon": None},
    "earth_imagery": {
        "cache_root": "data/earth_cache",
        "freshness_hours": 12,
        "collection": "natural",
        "list_timeout_s": 15,
        "image_timeout_s": 30,
        "sync_wait_timeout_s": 120,
    },
    "feeds": {"timeout_s": 10},
    "logging": {"level": None},
}

# env var -> (section, key)
_ENV_OVERRIDES = {
    "FCC_API_KEY": ("auth", "api_key"),
    "FCC_DEMO_API_KEY": ("auth", "demo_api_key"),
    "FCC_STUDIO_LAT": ("studio", "lat"),
    "FCC_STUDIO_LON": ("studio", "lon"),
    "NASA_API_KEY": ("earth_imagery", "nasa_api_key"),
    "EARTH_CACHE_ROOT": ("earth_imagery", "cache_root"),
    "LOG_LEVEL": ("logging", "level"),
}


def _merge(base: Dict[str, Any], over: Mapping[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (over or {}).items():
        if isinstance(v, Mapping) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Defaults <- YAML file (if present) <- environment.
    Path precedence: explicit arg, env STUDIO_CONFIG, config/params.yaml.
    """
    env = os.environ if env is None else env
    path = path or env.get("STUDIO_CONFIG") or "config/params.yaml"
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    if Path(path).exists():
        with open(path, "r", encoding="utf-8") as f:
            cfg = _merge(cfg, yaml.safe_load(f) or {})
    for var, (section, key) in _ENV_OVERRIDES.items():
        if env.get(var):
            cfg.setdefault(section, {})[key] = env[var]
    return cfg


def _error_response(exc: ApiError) -> JSONResponse:
    return JSONResponse(exc.to_body(), status_code=exc.status_code)


def create_app(
    cfg: Optional[Dict[str, Any]] = None,
    *,
    earth: Optional[EarthImageCache] = None,
    adsb: Optional[AdsbClient] = None,
    satellites: Optional[SatelliteClient] = None,
    demo_aircraft: Optional[DemoAircraftSimulator] = None,
) -> FastAPI:
    """Build the gateway. Collaborators can be injected (tests); otherwise built from `cfg`."""
    cfg = _merge(DEFAULT_CONFIG, cfg) if cfg is not None else load_config()
    setup_logging(cfg["logging"].get("level"))

    ei = cfg["earth_imagery"]
    policy = FreshnessPolicy.from_hours(float(ei["freshness_hours"]))
    if earth is None:
        client = EpicClient(
            api_key=ei.get("nasa_api_key"),
            collection=ei.get("collection", "natural"),
            list_timeout=float(ei["list_timeout_s"]),
            image_timeout=float(ei["image_timeout_s"]),
        )
        earth = EarthImageCache.build(
            ei["cache_root"],
            client,
            policy,
            sync_wait_timeout=float(ei["sync_wait_timeout_s"]),
            local_url_prefix=f"{EARTH_PREFIX}/image",
        )
    feed_timeout = float(cfg["feeds"]["timeout_s"])
    adsb = adsb or AdsbClient(timeout=feed_timeout)
    satellites = satellites or SatelliteClient(timeout=feed_timeout)
    demo_aircraft = demo_aircraft or DemoAircraftSimulator()

    def studio_location() -> StudioLocation:
        return StudioLocation.parse(cfg["studio"].get("lat"), cfg["studio"].get("lon"))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        earth.shutdown()

    app = FastAPI(title="Studio Feeds Gateway", version="1.0.0", lifespan=lifespan)
    app.state.guard = ApiKeyGuard(cfg["auth"].get("api_key"), cfg["auth"].get("demo_api_key"))
    app.state.earth = earth

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept", "Authorization"],
    )

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        return _error_response(exc)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        log.exception("Unhandled error on %s", request.url.path)
        return _error_response(ApiError(500, "Internal server error", str(exc)))

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "time": iso_now_ms(),
            "earth_imagery": earth.status(),
            "demo_enabled": app.state.guard.demo_api_key is not None,
        }

    # -------- whole-Earth imagery --------

    @app.get(EARTH_PREFIX)
    def whole_earth_images(access: Access = Depends(require_access)):
        """Image ids of the current cache (JSON array); may trigger a refresh."""
        try:
            return earth.list_image_ids(demo_mode=access.demo_mode)
        except ConfigurationError as e:
            log.error("Earth imagery not configured: %s", e)
            raise ApiError(500, "Error fetching whole earth satellite image", str(e)) from e
        except Exception as e:
            log.exception("Error fetching whole earth satellite image")
            raise ApiError(500, "Error fetching whole earth satellite image", str(e)) from e

    @app.get(EARTH_PREFIX + "/image/{filename}")
    def whole_earth_image(filename: str, access: Access = Depends(require_access)):
        image_id = filename[:-4] if filename.lower().endswith(".png") else filename
        data = earth.image_bytes(image_id)
        if data is None:
            raise ApiError(404, "Image not found", "The requested image is not available in cache")
        headers = {
            "Cache-Control": f"public, max-age={earth.policy.max_age_seconds}",
            "Content-Disposition": f'inline; filename="{image_id}.png"',
        }
        return Response(content=data, media_type="image/png", headers=headers)

    @app.api_route(EARTH_PREFIX + "/clear-cache", methods=["GET", "POST"])
    def whole_earth_clear_cache(access: Access = Depends(require_access)):
        try:
            earth.clear()
        except OSError as e:
            log.exception("Error clearing cache")
            raise ApiError(500, "Error clearing cache", str(e)) from e
        return {"message": "Cache cleared successfully", "status": "success"}

    # -------- pass-through feeds --------

    @app.get("/AircraftOverhead")
    def aircraft_overhead(access: Access = Depends(require_access)):
        try:
            if access.demo_mode:
                loc, aircraft = DEMO_CENTER, demo_aircraft.snapshot()
            else:
                loc = studio_location()
                aircraft = adsb.aircraft_near(loc, AIRCRAFT_RADIUS_NM)
        except (ConfigurationError, UpstreamError) as e:
            log.error("Error fetching Aircraft data: %s", e)
            raise ApiError(500, "Error fetching Aircraft data", str(e)) from e
        return {
            "aircraft": aircraft,
            "metadata": {
                "timestamp": iso_now_ms(),
                "count": len(aircraft),
                "location": {"lat": loc.lat, "lng": loc.lon},
                "radius": {"value": AIRCRAFT_RADIUS_NM, "unit": "nm"},
            },
        }

    @app.get("/AirplanesOverhead")
    def airplanes_overhead(access: Access = Depends(require_access)):
        try:
            return adsb.raw_near(studio_location())
        except (ConfigurationError, UpstreamError) as e:
            log.error("Error fetching airplane data: %s", e)
            raise ApiError(500, "Error fetching airplane data", str(e)) from e

    @app.get("/SatellitesOverhead")
    def satellites_overhead(access: Access = Depends(require_access)):
        if access.demo_mode:
            data, location, source = DEMO_SATELLITES, {"lat": "DEMO_LAT", "lng": "DEMO_LON"}, "demo"
        else:
            try:
                loc = studio_location()
                data = satellites.satellites_above(loc, SATELLITE_RADIUS_KM)
            except (ConfigurationError, UpstreamError) as e:
                log.error("Error fetching satellite data: %s", e)
                raise ApiError(500, "Error fetching satellite data", str(e)) from e
            location, source = {"lat": loc.lat, "lng": loc.lon}, "space-api.danmade.app"
        return {
            "satellites": data,
            "metadata": {
                "timestamp": iso_now_ms(),
                "count": satellite_count(data),
                "location": location,
                "radius": {"value": SATELLITE_RADIUS_KM, "unit": "km"},
                "source": source,
            },
        }

    return app


def main() -> None:
    ap = argparse.ArgumentParser(description="Studio feeds gateway")
    ap.add_argument("--config", default=None, help="YAML config (default: $STUDIO_CONFIG or config/params.yaml)")
    ap.add_argument("--host", default=None)
    ap.add_argument("--port", type=int, default=None)
    args = ap.parse_args()

    cfg = load_config(args.config)
    app = create_app(cfg)
    uvicorn.run(
        app,
        host=args.host or cfg["server"]["host"],
        port=int(args.port or cfg["server"]["port"]),
        log_config=None,
    )


# -------- local dev entrypoint --------
if __name__ == "__main__":
    main()
