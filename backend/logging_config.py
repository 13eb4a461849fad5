"""Logging setup for the command-line entry points.

Timestamps are UTC in ISO-8601 form so sync runs started from cron line up
with the feeds' rate-limit windows regardless of the host time zone.
"""

import logging
import time
from typing import Optional

from config import settings

LOG_FORMAT = "%(asctime)sZ [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Per-request chatter; the feed clients log their own summaries
QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "httpx", "httpcore", "keyring")


def setup_logging(level: Optional[str] = None) -> None:
    """Route all log records to stderr with the ledger's format.

    ``level`` overrides ``settings.LOG_LEVEL``, e.g. from a ``--log-level``
    flag. Raises ValueError for a name the logging module does not know.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    numeric_level = logging.getLevelNamesMapping().get(level_name)
    if numeric_level is None:
        raise ValueError(f"Unknown log level: {level_name}")

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    formatter.converter = time.gmtime
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
