"""
Earth Imagery — stale-while-revalidate disk cache for NASA EPIC images

- ImageStore: PNG blobs under `<cache_root>/images/<id>.png`, staged as `temp_*` then published
- MetadataStore: `<cache_root>/earth-images.json` (capturedAt + ordered items), cross-checked against blobs
- RefreshCoordinator: one refresh at a time; list → download/stage → publish → save
- EarthImageCache: read path used by the gateway (`/WholeEarthSatelliteImage`)
"""
