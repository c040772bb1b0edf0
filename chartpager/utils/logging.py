"""Logging helpers shared by the chart paging modules."""
from __future__ import annotations

import logging
import os
from logging import Logger

LOG_FORMAT = "%(asctime)s | %(levelname)8s | %(name)s | %(message)s"


def configure_logging(level: int | str | None = None) -> None:
    if level is None:
        level = os.getenv("CHARTPAGER_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def get_logger(name: str) -> Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)
