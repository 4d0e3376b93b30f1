from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from common.errors import UpstreamError


log = logging.getLogger(__name__)


def get_json(
    session: requests.Session,
    url: str,
    *,
    what: str,
    timeout: float,
    params: Optional[Dict[str, Any]] = None,
) -> Any:
    """GET `url` and decode JSON; any failure becomes UpstreamError("Failed to fetch <what> ...")."""
    try:
        r = session.get(url, params=params, timeout=timeout)
    except requests.RequestException as e:
        raise UpstreamError(f"Failed to fetch {what}: {e}") from e
    if r.status_code != 200:
        log.warning("%s request failed: %s %s", what, r.status_code, r.text[:200])
        raise UpstreamError(f"Failed to fetch {what}: {r.status_code}", status_code=r.status_code)
    try:
        return r.json()
    except ValueError as e:
        raise UpstreamError(f"Failed to fetch {what}: invalid JSON") from e
