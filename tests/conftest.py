"""
Shared fixtures: an in-memory EPIC stand-in, a settable clock and cache builders.
"""

import os
import sys
import threading
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.append(project_root)

from common.errors import UpstreamError
from earth_imagery.cache import EarthImageCache
from earth_imagery.freshness import FreshnessPolicy


T0 = datetime(2026, 10, 17, 8, 0, 0, tzinfo=timezone.utc)


def epic_item(image_id: str, day: int = 16) -> Dict:
    return {
        "identifier": image_id[-14:],
        "image": image_id,
        "caption": "This image was taken by NASA's EPIC camera onboard the NOAA DSCOVR spacecraft",
        "date": f"2026-10-{day:02d} 00:13:03",
        "centroid_coordinates": {"lat": 4.2, "lon": 171.5},
    }


class FakeEpicClient:
    """Implements the EpicClient surface used by the coordinator, without HTTP."""

    def __init__(self, items: Optional[List[Dict]] = None, fail_ids: Iterable[str] = ()):
        self.items = list(items or [])
        self.fail_ids = set(fail_ids)
        self.list_error: Optional[Exception] = None
        self.gate: Optional[threading.Event] = None
        self.entered = threading.Event()
        self.list_calls = 0
        self.fetched: List[str] = []

    def archive_url(self, image_id: str, captured: date) -> str:
        return f"https://epic.test/archive/natural/{captured:%Y/%m/%d}/png/{image_id}.png"

    def list_images(self) -> List[Dict]:
        self.list_calls += 1
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.list_error is not None:
            raise self.list_error
        return [dict(it) for it in self.items]

    def fetch_image(self, url: str) -> bytes:
        image_id = url.rsplit("/", 1)[1][: -len(".png")]
        self.fetched.append(image_id)
        if image_id in self.fail_ids:
            raise UpstreamError("Failed to download image: 404", status_code=404)
        return f"PNG:{image_id}".encode()


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_client():
    return FakeEpicClient(items=[epic_item(f"epic_1b_2026101600{i:04d}") for i in range(3)])


@pytest.fixture
def make_item():
    return epic_item


@pytest.fixture
def make_cache(tmp_path, clock):
    """Factory: make_cache(client) -> EarthImageCache rooted in tmp_path with a 12 h window."""
    built: List[EarthImageCache] = []

    def _make(client, window_hours: float = 12, sync_wait_timeout: float = 5.0) -> EarthImageCache:
        cache = EarthImageCache.build(
            tmp_path / "earth_cache",
            client,
            FreshnessPolicy.from_hours(window_hours),
            clock=clock,
            sync_wait_timeout=sync_wait_timeout,
        )
        built.append(cache)
        return cache

    yield _make
    for c in built:
        c.coordinator.shutdown(wait=True)


def snapshot_dir(path) -> Dict[str, bytes]:
    """{filename: bytes} for every file under `path` (recursive)."""
    if not path.exists():
        return {}
    return {str(p.relative_to(path)): p.read_bytes() for p in sorted(path.rglob("*")) if p.is_file()}


@pytest.fixture
def snapshot():
    return snapshot_dir


@pytest.fixture
def client_factory():
    """FakeEpicClient constructor, for tests that need a custom item list."""
    return FakeEpicClient
