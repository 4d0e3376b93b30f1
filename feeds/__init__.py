"""
Overhead feeds — thin pass-through clients (no caching)

- adsb.AdsbClient: aircraft near the studio (adsb.fi, normalised) and raw adsb.lol data
- satellites.SatelliteClient: satellites above the studio (space-api.danmade.app)
- demo: canned satellites and a dead-reckoning aircraft simulator for demo-mode callers
"""
