#!/usr/bin/env python3
"""
Warm (or rebuild) the whole-Earth image cache outside the gateway.

Runs one synchronous refresh cycle against NASA EPIC using the gateway's config,
then prints the cache stats. Safe to run while the gateway is down; with the
gateway up, the two processes do not share the refresh guard.

Examples:
  NASA_API_KEY=... python scripts/refresh_earth_cache.py
  python scripts/refresh_earth_cache.py --config config/params.yaml --clear
"""
from __future__ import annotations

import argparse
import json
import sys

from common.errors import ConfigurationError, UpstreamError
from common.logging_setup import setup_logging
from earth_imagery.cache import EarthImageCache
from earth_imagery.epic_client import EpicClient
from earth_imagery.freshness import FreshnessPolicy
from gateway.server import EARTH_PREFIX, load_config


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", default=None, help="YAML config (default: $STUDIO_CONFIG or config/params.yaml)")
    ap.add_argument("--clear", action="store_true", help="Delete the cached record and images first")
    args = ap.parse_args()

    cfg = load_config(args.config)
    setup_logging(cfg["logging"].get("level"))
    ei = cfg["earth_imagery"]
    client = EpicClient(
        api_key=ei.get("nasa_api_key"),
        collection=ei.get("collection", "natural"),
        list_timeout=float(ei["list_timeout_s"]),
        image_timeout=float(ei["image_timeout_s"]),
    )
    cache = EarthImageCache.build(
        ei["cache_root"],
        client,
        FreshnessPolicy.from_hours(float(ei["freshness_hours"])),
        local_url_prefix=f"{EARTH_PREFIX}/image",
    )
    try:
        if args.clear:
            print(f"[ok] cleared {cache.clear()} cached files")
        record = cache.coordinator.fetch_and_cache(wait_timeout=float(ei["sync_wait_timeout_s"]))
    except (ConfigurationError, UpstreamError) as e:
        print(f"[error] {e}", file=sys.stderr)
        return 1
    finally:
        cache.shutdown()

    if record is None:
        print("[warn] no images downloaded; existing cache kept", file=sys.stderr)
        return 2
    print(f"[ok] cached {len(record.items)} images captured {record.captured_at.isoformat()}")
    print(json.dumps(cache.images.stats(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
