"""
Logging setup for the polysync backend.

Modules log through `logging.getLogger(__name__)`; this only decides where
those records go and at which level.
"""
from __future__ import annotations

import logging

from settings import log_level_name

_CONFIGURED = False

formatter = logging.Formatter(
    fmt="%(asctime)s - %(levelname)s - %(name)s - %(funcName)s:%(lineno)d - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def log_level() -> int:
    level = logging.getLevelName(log_level_name())
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(log_level())
    _CONFIGURED = True
