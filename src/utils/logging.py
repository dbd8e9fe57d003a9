from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


def setup_logging(level_name: str | None = None) -> None:
    """Send all records to stdout; ``LOG_LEVEL`` overrides ``level_name``."""

    global _configured
    name = (os.getenv("LOG_LEVEL") or level_name or "INFO").upper()
    level = getattr(logging, name, logging.INFO)
    root = logging.getLogger()
    if _configured:
        root.setLevel(level)
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.handlers[:] = [handler]
    root.setLevel(level)
    _configured = True
