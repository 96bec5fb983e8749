"""Logging utilities.

Git captures a filter's stdout as file content, so every log record goes to
stderr. The level comes from ``PREFAB_FILTER_LOG_LEVEL`` unless the caller
passes one.
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LOG_LEVEL = "PREFAB_FILTER_LOG_LEVEL"
DEFAULT_LEVEL = "WARNING"

_HANDLER_NAME = "prefab-filter"


def resolve_level(level: str | int | None = None) -> int:
    if level is None:
        level = os.environ.get(ENV_LOG_LEVEL) or DEFAULT_LEVEL
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.WARNING


def setup_logging(level: str | int | None = None) -> None:
    """Attach a stderr handler to the ``prefab_filter`` logger."""
    logger = logging.getLogger("prefab_filter")
    logger.setLevel(resolve_level(level))

    for handler in logger.handlers:
        if handler.get_name() == _HANDLER_NAME:
            # stderr may have been replaced since the handler was attached
            handler.setStream(sys.stderr)
            return

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(fmt)
    logger.addHandler(handler)
