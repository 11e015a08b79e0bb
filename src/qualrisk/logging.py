from __future__ import annotations

import logging
import os


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV = "QUALRISK_LOG_LEVEL"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging; QUALRISK_LOG_LEVEL wins when no level is passed."""
    resolved = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
