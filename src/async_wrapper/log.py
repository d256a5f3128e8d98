from __future__ import annotations

import logging
import os
from typing import Optional

LEVEL_ENV_VAR = "ASYNC_WRAPPER_LOG_LEVEL"  # name or number, e.g. "debug" / "10"
DEBUG_ENV_VAR = "ASYNC_WRAPPER_DEBUG"      # truthy -> DEBUG

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%H:%M:%S"


def _parse_level(text: str) -> Optional[int]:
    text = text.strip()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    return level if isinstance(level, int) else None


def _level_from_env() -> Optional[int]:
    raw = os.getenv(LEVEL_ENV_VAR, "")
    if raw.strip():
        return _parse_level(raw) or logging.INFO
    if os.getenv(DEBUG_ENV_VAR, "").strip().lower() in {"1", "true", "yes", "on"}:
        return logging.DEBUG
    return None


def configure_root(default_level: int | str = logging.INFO) -> int:
    """Set up root logging for the example app and return the level in use.

    ``ASYNC_WRAPPER_LOG_LEVEL`` beats ``ASYNC_WRAPPER_DEBUG``, which beats
    ``default_level``. An unreadable env level falls back to INFO.
    """
    level = _level_from_env()
    if level is None:
        level = _parse_level(default_level) if isinstance(default_level, str) else int(default_level)
        if level is None:
            level = logging.INFO

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=_FORMAT, datefmt=_DATEFMT)
    root.setLevel(level)
    return level
