from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV = "CLUSTER_PERSONAS_LOG_LEVEL"


def resolve_log_level(level: str | None = None) -> str:
    """Explicit level first, then ``CLUSTER_PERSONAS_LOG_LEVEL``, then INFO."""
    return (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=resolve_log_level(level), format=LOG_FORMAT)
