"""
Gateway — authenticated HTTP surface for the studio display

- /WholeEarthSatelliteImage (+ /image/{id}.png, /clear-cache) backed by earth_imagery
- /AircraftOverhead, /AirplanesOverhead, /SatellitesOverhead backed by feeds
- /health (no key required)
All feed routes require ?fccApiKey=; the demo key enables demo mode.
"""
