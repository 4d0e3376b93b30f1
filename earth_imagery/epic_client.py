from __future__ import annotations

"""
NASA EPIC adapter (authoritative source for the Earth-imagery cache).

Usage:
    client = EpicClient()  # requires NASA_API_KEY in env or api_key=...
    items = client.list_images()              # [{"image": "epic_1b_...", "date": "2025-07-02 00:13:03", ...}]
    url = client.archive_url(items[0]["image"], capture_date)
    png = client.fetch_image(url)

The credential is checked per call, not at construction, so a gateway can start
without it and report a configuration error on the request that needs it.
Archive URLs returned by archive_url() never contain the key; it is added as a
query parameter only when the request is made.
"""

import logging
import os
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from common.errors import ConfigurationError, UpstreamError


log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.nasa.gov/EPIC"


class EpicClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        base_url: str = DEFAULT_BASE_URL,
        collection: str = "natural",
        list_timeout: float = 15.0,
        image_timeout: float = 30.0,
    ):
        """
        Params:
            api_key: NASA API key (falls back to env NASA_API_KEY)
            session: optional requests.Session for connection reuse
            collection: EPIC collection (natural|enhanced)
            list_timeout / image_timeout: per-request timeouts in seconds
        """
        self.api_key = api_key or os.getenv("NASA_API_KEY")
        self.base_url = base_url.rstrip("/")
        self.collection = collection
        self.list_timeout = float(list_timeout)
        self.image_timeout = float(image_timeout)
        self.session = session or requests.Session()

    # ----------------------------
    # Public API
    # ----------------------------
    def require_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError("NASA API key is not configured")
        return self.api_key

    def list_url(self) -> str:
        return f"{self.base_url}/api/{self.collection}/images"

    def archive_url(self, image_id: str, captured: date) -> str:
        """Archive location of one PNG, e.g. .../archive/natural/2025/07/02/png/<id>.png"""
        return (
            f"{self.base_url}/archive/{self.collection}/"
            f"{captured.year:04d}/{captured.month:02d}/{captured.day:02d}/png/{image_id}.png"
        )

    def list_images(self) -> List[Dict[str, Any]]:
        """
        Latest image list, in provider order. Raises ConfigurationError without a
        key and UpstreamError on network failure, timeout, bad status, bad JSON
        or an empty list.
        """
        key = self.require_key()
        try:
            r = self.session.get(self.list_url(), params={"api_key": key}, timeout=self.list_timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to fetch images: {e}") from e
        if r.status_code != 200:
            raise UpstreamError(f"Failed to fetch images: {r.status_code}", status_code=r.status_code)
        try:
            data = r.json()
        except ValueError as e:
            raise UpstreamError("Failed to fetch images: invalid JSON") from e
        if not isinstance(data, list):
            raise UpstreamError("Failed to fetch images: expected a JSON array")
        if not data:
            raise UpstreamError("No images available")
        log.debug("EPIC listed %d images", len(data))
        return [d for d in data if isinstance(d, dict)]

    def fetch_image(self, url: str) -> bytes:
        key = self.require_key()
        try:
            r = self.session.get(url, params={"api_key": key}, timeout=self.image_timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to download image: {e}") from e
        if r.status_code != 200 or not r.content:
            raise UpstreamError(f"Failed to download image: {r.status_code}", status_code=r.status_code)
        return r.content
