"""
Integration tests for the gateway HTTP surface (FastAPI TestClient, fake upstreams)
"""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from common.errors import ConfigurationError, UpstreamError
from feeds.adsb import AdsbClient
from feeds.demo import DemoAircraftSimulator
from feeds.satellites import SatelliteClient
from gateway.server import create_app, load_config

KEY = "full-key"
DEMO = "demo-key"


@pytest.fixture
def adsb():
    return Mock(spec=AdsbClient)


@pytest.fixture
def satellites():
    return Mock(spec=SatelliteClient)


@pytest.fixture
def build(tmp_path, make_cache, fake_client, adsb, satellites):
    """build(studio=..., client=...) -> (TestClient, EarthImageCache)"""
    opened = []

    def _build(studio=None, client=None):
        cache = make_cache(client or fake_client)
        cfg = {
            "auth": {"api_key": KEY, "demo_api_key": DEMO},
            "studio": studio if studio is not None else {"lat": 40.7, "lon": -74.0},
            "earth_imagery": {"cache_root": str(tmp_path / "unused")},
        }
        app = create_app(
            cfg,
            earth=cache,
            adsb=adsb,
            satellites=satellites,
            demo_aircraft=DemoAircraftSimulator(clock=lambda: 0.0),
        )
        tc = TestClient(app)
        tc.__enter__()
        opened.append(tc)
        return tc, cache

    yield _build
    for tc in opened:
        tc.__exit__(None, None, None)


@pytest.fixture
def http(build):
    return build()[0]


class TestAuth:
    """Test cases for the API-key check"""

    def test_missing_key(self, http):
        r = http.get("/WholeEarthSatelliteImage")
        assert r.status_code == 401
        assert r.json() == {
            "error": "API key is required",
            "message": "Please provide an API key in the fccApiKey query parameter",
        }

    def test_invalid_key(self, http):
        r = http.get("/AircraftOverhead", params={"fccApiKey": "nope"})
        assert r.status_code == 403
        assert r.json()["error"] == "Invalid API key"

    def test_health_needs_no_key(self, http):
        r = http.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert r.json()["demo_enabled"] is True

    def test_cors_headers(self, http):
        r = http.get("/health", headers={"Origin": "http://display.local"})
        assert r.headers["access-control-allow-origin"] == "*"


class TestWholeEarthImages:
    """Test cases for /WholeEarthSatelliteImage"""

    def test_cold_cache_fetches_synchronously(self, http, fake_client):
        r = http.get("/WholeEarthSatelliteImage", params={"fccApiKey": KEY})
        assert r.status_code == 200
        assert r.json() == [it["image"] for it in fake_client.items]

    def test_cold_cache_demo_mode_is_empty(self, http, fake_client):
        r = http.get("/WholeEarthSatelliteImage", params={"fccApiKey": DEMO})
        assert r.status_code == 200
        assert r.json() == []
        assert fake_client.list_calls == 0

    def test_upstream_failure_is_empty_success(self, http, fake_client):
        fake_client.list_error = UpstreamError("Failed to fetch images: 500")
        r = http.get("/WholeEarthSatelliteImage", params={"fccApiKey": KEY})
        assert r.status_code == 200
        assert r.json() == []

    def test_missing_credential_is_500(self, http, fake_client):
        fake_client.list_error = ConfigurationError("NASA API key is not configured")
        r = http.get("/WholeEarthSatelliteImage", params={"fccApiKey": KEY})
        assert r.status_code == 500
        assert r.json() == {
            "message": "Error fetching whole earth satellite image",
            "error": "NASA API key is not configured",
        }

    @pytest.mark.parametrize("suffix", ["", ".png"])
    def test_image_served_with_headers(self, http, fake_client, suffix):
        http.get("/WholeEarthSatelliteImage", params={"fccApiKey": KEY})
        image_id = fake_client.items[0]["image"]

        r = http.get(f"/WholeEarthSatelliteImage/image/{image_id}{suffix}", params={"fccApiKey": KEY})

        assert r.status_code == 200
        assert r.content == f"PNG:{image_id}".encode()
        assert r.headers["content-type"] == "image/png"
        assert r.headers["cache-control"] == "public, max-age=43200"
        assert r.headers["content-disposition"] == f'inline; filename="{image_id}.png"'

    @pytest.mark.parametrize("name", ["epic_missing.png", "temp_1_x_epic.png", "..secret.png"])
    def test_unknown_image_is_404(self, http, name):
        r = http.get(f"/WholeEarthSatelliteImage/image/{name}", params={"fccApiKey": KEY})
        assert r.status_code == 404
        assert r.json() == {
            "message": "Image not found",
            "error": "The requested image is not available in cache",
        }

    def test_clear_cache_is_idempotent(self, build, fake_client):
        http, cache = build()
        http.get("/WholeEarthSatelliteImage", params={"fccApiKey": KEY})

        for _ in range(2):
            r = http.get("/WholeEarthSatelliteImage/clear-cache", params={"fccApiKey": KEY})
            assert r.status_code == 200
            assert r.json() == {"message": "Cache cleared successfully", "status": "success"}
        assert cache.metadata.load() is None
        assert cache.images.stats()["images"] == 0

    def test_clear_cache_without_cache(self, http):
        r = http.post("/WholeEarthSatelliteImage/clear-cache", params={"fccApiKey": KEY})
        assert r.status_code == 200
        assert r.json()["status"] == "success"


class TestFeeds:
    """Test cases for the pass-through feed routes"""

    def test_aircraft(self, http, adsb):
        adsb.aircraft_near.return_value = [{"id": "a1"}, {"id": "b2"}]
        r = http.get("/AircraftOverhead", params={"fccApiKey": KEY})

        assert r.status_code == 200
        body = r.json()
        assert body["aircraft"] == [{"id": "a1"}, {"id": "b2"}]
        assert body["metadata"]["count"] == 2
        assert body["metadata"]["location"] == {"lat": 40.7, "lng": -74.0}
        assert body["metadata"]["radius"] == {"value": 25, "unit": "nm"}

    def test_aircraft_demo_mode(self, http, adsb):
        r = http.get("/AircraftOverhead", params={"fccApiKey": DEMO})

        assert r.status_code == 200
        assert r.json()["metadata"]["location"] == {"lat": 40.73061, "lng": -73.935242}
        assert r.json()["metadata"]["count"] == len(r.json()["aircraft"]) > 0
        adsb.aircraft_near.assert_not_called()

    def test_aircraft_without_coordinates(self, build, adsb):
        http, _ = build(studio={"lat": None, "lon": None})
        r = http.get("/AircraftOverhead", params={"fccApiKey": KEY})

        assert r.status_code == 500
        assert r.json() == {
            "message": "Error fetching Aircraft data",
            "error": "FCC Studio coordinates are not configured",
        }
        adsb.aircraft_near.assert_not_called()

    def test_aircraft_upstream_error(self, http, adsb):
        adsb.aircraft_near.side_effect = UpstreamError("Failed to fetch Aircraft data: 502")
        r = http.get("/AircraftOverhead", params={"fccApiKey": KEY})
        assert r.status_code == 500
        assert r.json()["error"] == "Failed to fetch Aircraft data: 502"

    def test_airplanes_passthrough(self, http, adsb):
        adsb.raw_near.return_value = {"ac": [], "total": 0}
        r = http.get("/AirplanesOverhead", params={"fccApiKey": KEY})
        assert r.status_code == 200
        assert r.json() == {"ac": [], "total": 0}

    def test_satellites(self, http, satellites):
        satellites.satellites_above.return_value = {"info": {"satcount": 3}, "above": []}
        r = http.get("/SatellitesOverhead", params={"fccApiKey": KEY})

        meta = r.json()["metadata"]
        assert r.status_code == 200
        assert meta["count"] == 3
        assert meta["source"] == "space-api.danmade.app"
        assert meta["radius"] == {"value": 5000, "unit": "km"}

    def test_satellites_demo_mode(self, http, satellites):
        r = http.get("/SatellitesOverhead", params={"fccApiKey": DEMO})

        meta = r.json()["metadata"]
        assert meta["source"] == "demo"
        assert meta["count"] == 32
        assert meta["location"] == {"lat": "DEMO_LAT", "lng": "DEMO_LON"}
        satellites.satellites_above.assert_not_called()


class TestLoadConfig:
    """Test cases for load_config()"""

    def test_defaults_without_file(self, tmp_path):
        cfg = load_config(str(tmp_path / "missing.yaml"), env={})
        assert cfg["server"]["port"] == 3108
        assert cfg["earth_imagery"]["freshness_hours"] == 12
        assert cfg["auth"]["api_key"] is None

    def test_yaml_then_env(self, tmp_path):
        path = tmp_path / "params.yaml"
        path.write_text("earth_imagery:\n  freshness_hours: 6\nstudio:\n  lat: 1.0\n  lon: 2.0\n")

        cfg = load_config(str(path), env={"FCC_API_KEY": "k", "FCC_STUDIO_LAT": "51.5", "NASA_API_KEY": "n"})

        assert cfg["earth_imagery"]["freshness_hours"] == 6
        assert cfg["earth_imagery"]["image_timeout_s"] == 30
        assert cfg["studio"] == {"lat": "51.5", "lon": 2.0}
        assert cfg["auth"]["api_key"] == "k"
        assert cfg["earth_imagery"]["nasa_api_key"] == "n"

    def test_config_path_from_env(self, tmp_path):
        path = tmp_path / "alt.yaml"
        path.write_text("server:\n  port: 9000\n")
        assert load_config(env={"STUDIO_CONFIG": str(path)})["server"]["port"] == 9000
