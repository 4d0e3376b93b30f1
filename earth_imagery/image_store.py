from __future__ import annotations

import logging
import os
import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence


log = logging.getLogger(__name__)

TEMP_PREFIX = "temp_"
BLOB_SUFFIX = ".png"
_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


@dataclass(frozen=True)
class StagedBlob:
    """A fully written blob waiting under its temp name for publish()."""
    image_id: str
    temp_path: Path

    @property
    def final_name(self) -> str:
        return f"{self.image_id}{BLOB_SUFFIX}"


class ImageStore:
    """
    Flat directory of PNG blobs keyed by image id.

        root/
          ├─ <id>.png                          (published, servable)
          └─ temp_<ns>_<nonce>_<id>.png        (staged by an in-flight refresh)

    Readers only ever resolve `<id>.png`; staged files cannot collide with a
    final name because of the reserved `temp_` prefix.
    """

    def __init__(self, root: str | Path = "data/earth_cache/images"):
        self.root = Path(root)

    # -------- public API --------

    @staticmethod
    def is_valid_id(image_id: str) -> bool:
        return bool(_ID_RE.match(image_id or "")) and not image_id.startswith(TEMP_PREFIX)

    def path_for(self, image_id: str) -> Path:
        if not self.is_valid_id(image_id):
            raise ValueError(f"invalid image id: {image_id!r}")
        return self.root / f"{image_id}{BLOB_SUFFIX}"

    def exists(self, image_id: str) -> bool:
        if not self.is_valid_id(image_id):
            return False
        return self.path_for(image_id).is_file()

    def get(self, image_id: str) -> Optional[bytes]:
        """Blob bytes, or None if the id is unknown/invalid or unreadable."""
        if not self.is_valid_id(image_id):
            return None
        try:
            return self.path_for(image_id).read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            log.error("Error reading cached image %s: %s", image_id, e)
            return None

    def stage_put(self, image_id: str, data: bytes) -> StagedBlob:
        """
        Write `data` under a collision-free temp name. Raises ValueError for a
        bad id and OSError if the write fails (a partial temp file is removed).
        """
        if not self.is_valid_id(image_id):
            raise ValueError(f"invalid image id: {image_id!r}")
        self.root.mkdir(parents=True, exist_ok=True)
        temp_path = self.root / f"{TEMP_PREFIX}{time.time_ns()}_{uuid.uuid4().hex[:8]}_{image_id}{BLOB_SUFFIX}"
        try:
            with temp_path.open("wb") as f:
                f.write(data)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise
        return StagedBlob(image_id=image_id, temp_path=temp_path)

    def publish(self, staged: Sequence[StagedBlob]) -> List[str]:
        """
        Make `staged` the servable set.

        1) delete every final blob whose id is not in the batch, plus orphaned
           temp files left by earlier failed cycles;
        2) rename each staged temp onto `<id>.png` (os.replace, so ids present in
           both the old and new set are swapped in place, never missing).

        A failed rename keeps its temp file for diagnosis and the id is left out
        of the result. Returns the ids actually published, in batch order.
        """
        keep_final = {s.final_name for s in staged}
        batch_temps = {s.temp_path.name for s in staged}

        removed = 0
        for p in self._files():
            if p.name in keep_final or p.name in batch_temps:
                continue
            try:
                p.unlink()
                removed += 1
            except FileNotFoundError:
                pass
            except OSError as e:
                log.warning("Could not delete old cached file %s: %s", p.name, e)

        published: List[str] = []
        for s in staged:
            try:
                os.replace(s.temp_path, self.root / s.final_name)
            except OSError as e:
                log.error("Failed to publish %s; temp file left at %s: %s", s.image_id, s.temp_path, e)
                continue
            published.append(s.image_id)

        log.info(
            "Published image set",
            extra={"extra": {"removed": removed, "published": len(published), "staged": len(staged)}},
        )
        return published

    def discard(self, staged: Iterable[StagedBlob]) -> None:
        """Remove staged temps that will not be published."""
        for s in staged:
            s.temp_path.unlink(missing_ok=True)

    def delete_all(self) -> int:
        """Remove every blob and temp file. Idempotent; returns the number deleted."""
        n = 0
        for p in self._files():
            try:
                p.unlink()
                n += 1
            except FileNotFoundError:
                pass
        return n

    def stats(self) -> Dict[str, int]:
        blobs = temps = size = 0
        for p in self._files():
            if p.name.startswith(TEMP_PREFIX):
                temps += 1
                continue
            blobs += 1
            try:
                size += p.stat().st_size
            except OSError:
                pass
        return {"images": blobs, "staged": temps, "bytes": size}

    # -------- internals --------

    def _files(self) -> List[Path]:
        if not self.root.is_dir():
            return []
        return [p for p in self.root.iterdir() if p.is_file()]
