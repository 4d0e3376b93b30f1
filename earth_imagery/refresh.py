from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set

from common.errors import ConfigurationError, UpstreamError
from common.types import CacheRecord, ItemDescriptor
from common.utils import parse_capture_date, utc_now
from earth_imagery.epic_client import EpicClient
from earth_imagery.image_store import ImageStore, StagedBlob
from earth_imagery.metadata_store import MetadataStore


log = logging.getLogger(__name__)


class RefreshCoordinator:
    """
    Runs refresh cycles (list → download/stage → publish → save), at most one at a time.

    The guard is an instance lock taken with a non-blocking acquire, so two
    triggers racing for it cannot both win. It is released on every exit path.
    Background cycles run on a single-worker executor owned by the coordinator.
    """

    def __init__(
        self,
        client: EpicClient,
        images: ImageStore,
        metadata: MetadataStore,
        *,
        clock: Callable[[], datetime] = utc_now,
        local_url_prefix: str = "/WholeEarthSatelliteImage/image",
        executor: Optional[Executor] = None,
    ):
        self.client = client
        self.images = images
        self.metadata = metadata
        self.clock = clock
        self.local_url_prefix = local_url_prefix.rstrip("/")
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="earth-refresh")
        self._lock = threading.Lock()
        self.last_refresh_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

    # -------- public API --------

    @property
    def is_refreshing(self) -> bool:
        return self._lock.locked()

    def schedule_refresh(self) -> Optional[Future]:
        """
        Start a background cycle unless one is already running.
        Returns the job's Future, or None if the trigger was skipped.
        """
        if not self._lock.acquire(blocking=False):
            log.info("Cache refresh already in progress, skipping")
            return None
        try:
            return self._executor.submit(self._run_background)
        except RuntimeError as e:
            # executor already shut down
            self._lock.release()
            log.warning("Could not schedule cache refresh: %s", e)
            return None

    def fetch_and_cache(self, wait_timeout: float = 120.0) -> Optional[CacheRecord]:
        """
        Synchronous cycle for a cold cache. If another cycle holds the guard,
        wait for it (bounded) and return its result when it left a valid record.

        Raises ConfigurationError / UpstreamError from the feed client.
        Returns None when no image could be downloaded.
        """
        waited = False
        if not self._lock.acquire(blocking=False):
            log.info("Cache refresh in progress, waiting for it to finish")
            waited = True
            if not self._lock.acquire(timeout=wait_timeout):
                raise UpstreamError("Timed out waiting for in-flight cache refresh")
        try:
            if waited:
                current = self.metadata.load()
                if current is not None:
                    return current
            return self._cycle()
        finally:
            self._lock.release()

    def status(self) -> Dict[str, Any]:
        return {
            "refreshing": self.is_refreshing,
            "last_refresh_at": self.last_refresh_at.isoformat() if self.last_refresh_at else None,
            "last_error": self.last_error,
        }

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)

    # -------- internals --------

    def _run_background(self) -> Optional[CacheRecord]:
        log.info("Starting background cache refresh")
        try:
            return self._cycle()
        except (ConfigurationError, UpstreamError) as e:
            log.error("Background cache refresh failed: %s", e)
        except Exception as e:
            self.last_error = str(e)
            log.exception("Background cache refresh failed unexpectedly")
        finally:
            self._lock.release()
        return None

    def _cycle(self) -> Optional[CacheRecord]:
        try:
            items = self.client.list_images()
        except (ConfigurationError, UpstreamError) as e:
            self.last_error = str(e)
            raise
        log.info("Fetched image list", extra={"extra": {"count": len(items)}})

        staged: List[StagedBlob] = []
        descriptors: List[ItemDescriptor] = []
        seen: Set[str] = set()
        try:
            for item in items:
                desc = self._describe(item, seen)
                if desc is None:
                    continue
                try:
                    data = self.client.fetch_image(desc.provider_url)
                    blob = self.images.stage_put(desc.id, data)
                except (UpstreamError, OSError) as e:
                    log.error("Failed to process image %s: %s", desc.id, e)
                    continue
                log.debug("Staged %s as %s", desc.id, blob.temp_path.name)
                seen.add(desc.id)
                staged.append(blob)
                descriptors.append(desc)
        except BaseException:
            self.images.discard(staged)
            raise

        if not staged:
            self.last_error = "no images downloaded"
            log.warning("No images were successfully downloaded, keeping existing cache")
            return None

        published = set(self.images.publish(staged))
        kept = [d for d in descriptors if d.id in published]
        if not kept:
            self.last_error = "publish failed"
            log.error("No staged images could be published")
            return None

        record = CacheRecord(captured_at=self.clock(), items=kept)
        self.metadata.save(record)
        self.last_refresh_at = record.captured_at
        self.last_error = None
        log.info(
            "Cache refresh completed",
            extra={"extra": {"listed": len(items), "cached": len(kept), "skipped": len(items) - len(kept)}},
        )
        return record

    def _describe(self, item: Dict[str, Any], seen: Set[str]) -> Optional[ItemDescriptor]:
        image_id = item.get("image")
        if not isinstance(image_id, str) or not ImageStore.is_valid_id(image_id):
            log.warning("Skipping item with unusable image id: %r", image_id)
            return None
        if image_id in seen:
            log.warning("Skipping duplicate image %s", image_id)
            return None
        try:
            captured = parse_capture_date(item["date"])
        except (KeyError, TypeError, ValueError) as e:
            log.warning("Skipping image %s without a usable date: %s", image_id, e)
            return None
        return ItemDescriptor.from_provider(
            item,
            captured_date=captured,
            local_url=f"{self.local_url_prefix}/{image_id}.png",
            provider_url=self.client.archive_url(image_id, captured),
        )
