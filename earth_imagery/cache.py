from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from common.errors import UpstreamError
from common.utils import utc_now
from earth_imagery.epic_client import EpicClient
from earth_imagery.freshness import FreshnessPolicy
from earth_imagery.image_store import ImageStore
from earth_imagery.metadata_store import MetadataStore
from earth_imagery.refresh import RefreshCoordinator


log = logging.getLogger(__name__)

METADATA_FILE = "earth-images.json"
IMAGES_DIR = "images"


class EarthImageCache:
    """Stale-while-revalidate read path over the image/metadata stores."""

    def __init__(
        self,
        images: ImageStore,
        metadata: MetadataStore,
        coordinator: RefreshCoordinator,
        policy: Optional[FreshnessPolicy] = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        sync_wait_timeout: float = 120.0,
    ):
        self.images = images
        self.metadata = metadata
        self.coordinator = coordinator
        self.policy = policy or FreshnessPolicy()
        self.clock = clock
        self.sync_wait_timeout = float(sync_wait_timeout)

    @classmethod
    def build(
        cls,
        cache_root: str | Path,
        client: EpicClient,
        policy: Optional[FreshnessPolicy] = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        sync_wait_timeout: float = 120.0,
        local_url_prefix: str = "/WholeEarthSatelliteImage/image",
    ) -> "EarthImageCache":
        """Wire the stores and coordinator under `cache_root`."""
        root = Path(cache_root)
        images = ImageStore(root / IMAGES_DIR)
        metadata = MetadataStore(root / METADATA_FILE, images)
        coordinator = RefreshCoordinator(
            client, images, metadata, clock=clock, local_url_prefix=local_url_prefix
        )
        return cls(images, metadata, coordinator, policy, clock=clock, sync_wait_timeout=sync_wait_timeout)

    # -------- public API --------

    def list_image_ids(self, demo_mode: bool = False) -> List[str]:
        """
        Ids of the servable images, in the order of the last successful refresh.

        - cached: returned at once; a stale record schedules a background refresh
          (suppressed in demo mode)
        - not cached, demo mode: [] without touching the network
        - not cached: synchronous fetch-and-cache; [] if the upstream failed.
          ConfigurationError propagates to the caller.
        """
        record = self.metadata.load()
        if record is not None:
            if self.policy.is_stale(self.clock(), record.captured_at):
                if demo_mode:
                    log.info("Demo mode: cache is stale but skipping background refresh")
                else:
                    log.info("Cache is stale, triggering background refresh")
                    self.coordinator.schedule_refresh()
            return record.ids

        if demo_mode:
            log.info("Demo mode: no cache available, returning empty list")
            return []

        try:
            record = self.coordinator.fetch_and_cache(wait_timeout=self.sync_wait_timeout)
        except UpstreamError as e:
            log.error("Error fetching fresh data: %s", e)
            return []
        return record.ids if record is not None else []

    def image_bytes(self, image_id: str) -> Optional[bytes]:
        return self.images.get(image_id)

    def clear(self) -> int:
        """Drop the record and every blob. Idempotent; returns blobs deleted."""
        self.metadata.clear()
        n = self.images.delete_all()
        log.info("Cache cleared", extra={"extra": {"deleted": n}})
        return n

    def status(self) -> Dict[str, Any]:
        return {
            "images": self.images.stats(),
            "freshness_s": self.policy.max_age_seconds,
            **self.coordinator.status(),
        }

    def shutdown(self) -> None:
        self.coordinator.shutdown(wait=False)
