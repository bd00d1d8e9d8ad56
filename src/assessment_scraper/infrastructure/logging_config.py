"""Logging bootstrap for command-line runs."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV_VAR = "ASSESSMENT_SCRAPER_LOG_LEVEL"


def resolve_log_level(raw_value: str | None = None) -> int:
    """Map a level name such as ``debug`` to its numeric level; INFO when unset."""
    if raw_value is None:
        raw_value = os.environ.get(LOG_LEVEL_ENV_VAR, "")
    value = raw_value.strip()
    if not value:
        return logging.INFO
    level = logging.getLevelName(value.upper())
    if not isinstance(level, int):
        raise ValueError(f"{LOG_LEVEL_ENV_VAR} must be a logging level name, got {value!r}.")
    return level


def configure_logging(level: int | None = None) -> None:
    """Configure root logger once; later calls keep existing handlers."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    logging.basicConfig(
        level=level if level is not None else resolve_log_level(),
        format=LOG_FORMAT,
    )
