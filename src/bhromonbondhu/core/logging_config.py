"""Logging configuration for the service and maintenance scripts."""
from __future__ import annotations

import logging

from bhromonbondhu.core.settings import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install the root handler once; repeated calls only adjust the level."""
    resolved = (level or settings.log_level).upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=resolved, format=LOG_FORMAT)
    root.setLevel(resolved)
    # SQL echo is driven by SQL_DEBUG on the engine, keep the logger quiet otherwise.
    if not settings.sql_debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
