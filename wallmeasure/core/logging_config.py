from __future__ import annotations

import logging
import logging.config
import sys
from typing import IO, Optional


def setup_logging(level_name: Optional[str] = None, stream: Optional[IO[str]] = None) -> None:
    """
    Configure application logging.

    ``level_name`` defaults to the LOG_LEVEL setting, ``stream`` to stdout.
    """
    if level_name is None:
        from wallmeasure.config import get_settings

        level_name = get_settings().LOG_LEVEL
    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": stream or sys.stdout,
                }
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": {
                "uvicorn.access": {"level": "WARNING"},
            },
        }
    )
