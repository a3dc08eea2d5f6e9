"""
Logging configuration for the Valley Weather service.

Console output plus rotating files: everything at INFO and above goes to
valleywx.log, errors additionally to valleywx_errors.log. Jobs and the API
share the same setup so nowcast and verification lines end up together.
"""

import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional

from valleywx.config import settings

DEV_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
PROD_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every statement or request at INFO
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_dir: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        log_dir: Directory for the rotating files (defaults to LOG_DIR)

    Returns:
        The root logger
    """
    directory = Path(log_dir or settings.LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        fmt=DEV_FORMAT if settings.DEBUG else PROD_FORMAT,
        datefmt=DATE_FORMAT,
    )

    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL)
    # Re-running setup (scripts import the app) must not duplicate output
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    console.setFormatter(formatter)
    root.addHandler(console)

    root.addHandler(_rotating_handler(directory / "valleywx.log", logging.INFO, formatter))
    root.addHandler(_rotating_handler(directory / "valleywx_errors.log", logging.ERROR, formatter))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info(
        f"Logging initialized: level={settings.LOG_LEVEL} debug={settings.DEBUG} "
        f"dir={directory} timezone={settings.TIMEZONE}"
    )
    return root


def get_logger(name: str) -> logging.Logger:
    """Module logger; configuration comes from setup_logging."""
    return logging.getLogger(name)
