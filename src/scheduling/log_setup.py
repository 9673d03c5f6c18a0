from __future__ import annotations

import logging

from src.scheduling.config import LoggingConfig


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure root logging for scripts and the solver process.

    Safe to call multiple times (won't double-add handlers). Library code only
    ever logs through module-level loggers and never calls this itself.
    """
    config = config or LoggingConfig()
    root = logging.getLogger()
    if root.handlers:
        return

    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=config.format, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    logging.basicConfig(level=level, handlers=[handler])
