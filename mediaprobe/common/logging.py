# mediaprobe/common/logging.py
from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str = "mediaprobe", level: int | str | None = None) -> logging.Logger:
    """
    Return a named logger. If the root logger has no handlers yet (library used
    from a plain script), we add a basicConfig once so messages are visible.
    Level defaults to Settings.log_level.
    """
    if level is None:
        from mediaprobe.common.settings import get_settings
        level = get_settings().log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name)
    if not logging.getLogger().handlers and not logger.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    logger.setLevel(level)
    return logger
