"""Process-wide logging setup.

All modules log through ``logging.getLogger(__name__)``; this module only
installs the handler and format once, at application import.
"""

from __future__ import annotations

import logging
import sys

from buildseason.core.config import get_settings

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

_QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "httpx")


def configure_logging(level: str | None = None) -> None:
    settings = get_settings()
    resolved = (level or settings.log_level or "INFO").upper()

    root = logging.getLogger()
    if not any(getattr(h, "_buildseason", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._buildseason = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(resolved)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
