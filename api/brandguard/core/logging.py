from __future__ import annotations

import logging

from .structured_logging import build_handler

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Route all application and server logs through the JSON handler."""
    global _configured
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if _configured:
        return
    root.handlers = [build_handler()]
    # uvicorn installs its own handlers; make them propagate to ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True
    # httpx logs one INFO line per vendor request
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True
