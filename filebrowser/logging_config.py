"""Logging setup for the service."""

from __future__ import annotations

import logging.config
import sys
from typing import Any

from .config import settings


def setup_logging(level: str | None = None) -> None:
    log_level = (level or settings.log_level).upper()
    config: dict[str, Any] = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'detailed': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': log_level,
                'formatter': 'detailed',
                'stream': sys.stdout,
            },
        },
        'loggers': {
            'filebrowser': {'level': log_level, 'handlers': ['console'], 'propagate': False},
            'uvicorn.access': {'level': 'WARNING'},
        },
    }
    logging.config.dictConfig(config)
