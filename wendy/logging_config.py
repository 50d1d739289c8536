"""Logging setup shared by the API server and the scheduler."""

import logging
import logging.config
from typing import Optional

from wendy.config import settings


def build_logging_config(level: str, log_file: Optional[str]) -> dict:
    handlers = ["console"]
    config = {
        "version": 1,
        "disable_existing_loggers": False,  # keep uvicorn/fastapi loggers alive
        "formatters": {
            "default": {
                "format": "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
            },
        },
        "root": {"level": level, "handlers": handlers},
        "loggers": {
            "uvicorn.error": {"level": level, "handlers": handlers, "propagate": False},
            "uvicorn.access": {"level": level, "handlers": handlers, "propagate": False},
            "wendy": {"level": level, "handlers": handlers, "propagate": False},
        },
    }
    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.FileHandler",
            "level": level,
            "formatter": "default",
            "filename": log_file,
            "mode": "a",
            "encoding": "utf-8",
            "delay": True,
        }
        handlers.append("file")
    return config


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    logging.config.dictConfig(
        build_logging_config(
            (level or settings.log_level).upper(),
            log_file if log_file is not None else settings.log_file,
        )
    )
