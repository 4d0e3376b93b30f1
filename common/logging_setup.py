from __future__ import annotations

import logging
import os
import sys
import json
import time
from typing import Optional


class JsonFormatter(logging.Formatter):
    """
    Minimal JSON log formatter:
      { "t": 169, "lvl": "INFO", "name": "mod", "msg": "text", "extra": {...} }
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "t": int(time.time() * 1000),
            "lvl": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        # Callers attach counters with logger.info(..., extra={"extra": {...}})
        if hasattr(record, "extra") and isinstance(record.extra, dict):  # type: ignore[attr-defined]
            payload["extra"] = record.extra  # type: ignore[attr-defined]
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure root logger once with JSON formatting.
    Level precedence:
      - explicit `level` arg
      - env LOG_LEVEL (e.g., DEBUG/INFO/WARN/ERROR)
      - default INFO
    """
    root = logging.getLogger()
    if getattr(root, "_studio_configured", False):  # idempotent
        return

    lvl_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    lvl = getattr(logging, lvl_name, None)
    if not isinstance(lvl, int):
        lvl = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(lvl)
    root._studio_configured = True  # type: ignore[attr-defined]
