import logging
from typing import Optional

from readmaster.config import settings

LOGGER_NAME = "read_master"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# chatty at INFO; only their warnings reach our output
QUIET_LOGGERS = ("apscheduler", "httpx", "sqlalchemy.engine")


def _resolve_level(level) -> int:
    if isinstance(level, int):
        return level
    # unknown names come back as "Level X" strings
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logger(level: Optional[str] = None) -> logging.Logger:
    """Configure the ``read_master`` logger.

    Safe to call repeatedly: the console handler is attached once, while the
    level is re-applied on every call so a later ``LOG_LEVEL`` change sticks.
    """
    resolved = _resolve_level(level or settings.log_level)

    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(resolved)

    handler = next((h for h in app_logger.handlers if getattr(h, "name", None) == LOGGER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler()
        handler.set_name(LOGGER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        app_logger.addHandler(handler)
    handler.setLevel(resolved)

    for name in QUIET_LOGGERS:
        noisy = logging.getLogger(name)
        if noisy.level < logging.WARNING:
            noisy.setLevel(logging.WARNING)

    return app_logger


logger = setup_logger()
