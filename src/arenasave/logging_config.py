import logging
import os

LOG_LEVEL_ENV = "ARENASAVE_LOG_LEVEL"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def resolve_level(default_level: int = logging.INFO, *, debug: bool = False) -> int:
    """Pick the root log level.

    ARENASAVE_LOG_LEVEL wins when it names a known level; otherwise ``debug``
    selects DEBUG and anything else falls back to ``default_level``.
    """
    level_name = os.getenv(LOG_LEVEL_ENV)
    if level_name:
        level = logging.getLevelName(level_name.strip().upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if debug else default_level


def configure_logging(default_level: int = logging.INFO, *, debug: bool = False) -> int:
    """Configure the root logger and return the level that was applied."""
    level = resolve_level(default_level, debug=debug)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    return level
