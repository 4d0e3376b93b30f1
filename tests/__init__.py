"""
Studio Feeds Gateway Test Suite

Structure:
- unit/: stores, freshness, refresh coordinator, read path, feed clients
- integration/: the FastAPI app through TestClient, with fake upstreams
"""
