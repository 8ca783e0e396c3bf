# qregister/logging_config.py
from __future__ import annotations

import logging

from qregister.settings import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Configure the ``qregister`` logger once and return it.

    Parameters
    ----------
    level : str, optional
        Overrides ``settings.LOG_LEVEL`` (e.g. "DEBUG").
    """
    global _configured
    logger = logging.getLogger("qregister")
    chosen = (level or get_settings().LOG_LEVEL).upper()
    logger.setLevel(chosen)

    if not _configured:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
        _configured = True
    return logger
