from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping

from common.errors import ConfigurationError
from common.utils import parse_iso8601


# Keys owned by ItemDescriptor; everything else in a serialized item is provider passthrough.
_RESERVED_KEYS = ("image", "capturedDate", "imageUrl", "originalUrl")


@dataclass(slots=True)
class ItemDescriptor:
    """
    One servable Earth image.

    Attributes:
        id: provider image identifier; unique within a CacheRecord and used as
            the blob filename stem (<id>.png).
        captured_date: calendar date the image was taken (drives the archive URL).
        provider_metadata: untouched provider fields (caption, centroid, ...).
        local_url: path under which this gateway serves the blob.
        provider_url: archive URL the blob was downloaded from (no credential).
    """
    id: str
    captured_date: date
    provider_metadata: Dict[str, Any] = field(default_factory=dict)
    local_url: str = ""
    provider_url: str = ""

    @classmethod
    def from_provider(
        cls, item: Mapping[str, Any], *, captured_date: date, local_url: str, provider_url: str
    ) -> "ItemDescriptor":
        return cls(
            id=str(item["image"]),
            captured_date=captured_date,
            provider_metadata={k: v for k, v in item.items() if k not in _RESERVED_KEYS},
            local_url=local_url,
            provider_url=provider_url,
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {k: v for k, v in self.provider_metadata.items() if k not in _RESERVED_KEYS}
        out.update(
            {
                "image": self.id,
                "capturedDate": self.captured_date.isoformat(),
                "imageUrl": self.local_url,
                "originalUrl": self.provider_url,
            }
        )
        return out

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "ItemDescriptor":
        image_id = d["image"]
        if not isinstance(image_id, str) or not image_id:
            raise ValueError("item 'image' must be a non-empty string")
        return cls(
            id=image_id,
            captured_date=date.fromisoformat(str(d["capturedDate"])),
            provider_metadata={k: v for k, v in d.items() if k not in _RESERVED_KEYS},
            local_url=str(d.get("imageUrl", "")),
            provider_url=str(d.get("originalUrl", "")),
        )


@dataclass(slots=True)
class CacheRecord:
    """Whole-record snapshot of what the Earth-imagery cache can currently serve."""
    captured_at: datetime
    items: List[ItemDescriptor] = field(default_factory=list)

    @property
    def ids(self) -> List[str]:
        return [it.id for it in self.items]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capturedAt": self.captured_at.isoformat(),
            "items": [it.to_dict() for it in self.items],
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "CacheRecord":
        items = d["items"]
        if not isinstance(items, list):
            raise ValueError("'items' must be a list")
        return cls(
            captured_at=parse_iso8601(str(d["capturedAt"])),
            items=[ItemDescriptor.from_dict(it) for it in items],
        )


@dataclass(frozen=True)
class StudioLocation:
    """Studio coordinates the overhead feeds are centred on."""
    lat: float
    lon: float

    @classmethod
    def parse(cls, lat: Any, lon: Any) -> "StudioLocation":
        """Build from config/env values; raises ConfigurationError if either is missing."""
        if lat in (None, "") or lon in (None, ""):
            raise ConfigurationError("FCC Studio coordinates are not configured")
        try:
            return cls(lat=float(lat), lon=float(lon))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"FCC Studio coordinates are invalid: {e}") from e
