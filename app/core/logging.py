from __future__ import annotations

import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

# Third-party loggers that are too chatty at INFO for an ingest service.
_QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "slowapi")


def configure_logging() -> None:
    """Configure root logging once per process (format + level)."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
