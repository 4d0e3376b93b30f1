from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from common.types import CacheRecord
from earth_imagery.image_store import ImageStore


log = logging.getLogger(__name__)


class MetadataStore:
    """
    Single JSON record describing the servable image set.

    A record is only trusted if every item it lists has a published blob in the
    ImageStore; otherwise load() reports a cache miss.
    """

    def __init__(self, path: str | Path, images: ImageStore):
        self.path = Path(path)
        self.images = images

    def load(self) -> Optional[CacheRecord]:
        if not self.path.exists():
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            record = CacheRecord.from_dict(raw)
        except (OSError, ValueError, KeyError, TypeError) as e:
            log.error("Error reading cache metadata %s: %s", self.path, e)
            return None

        missing = [it.id for it in record.items if not self.images.exists(it.id)]
        if missing:
            log.warning(
                "Cache metadata references missing images; treating as cache miss",
                extra={"extra": {"missing": missing[:10], "missing_count": len(missing)}},
            )
            return None
        return record

    def save(self, record: CacheRecord) -> bool:
        """Atomically replace the record. Errors are logged, never raised."""
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(record.to_dict(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as e:
            log.error("Error saving cache metadata %s: %s", self.path, e)
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                pass
            return False
        return True

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
