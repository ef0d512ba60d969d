"""Logging configuration."""

import logging
import sys
from pathlib import Path
from typing import Optional

from mockmatch.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "mockmatch.log"

_installed_handlers: list[logging.Handler] = []


def setup_logging(level: Optional[str] = None) -> None:
    """
    Send application logs to stdout and to ``LOG_DIR/mockmatch.log``.

    Calling it again (for example when the app is started twice in one
    process) replaces the handlers it installed earlier.
    """
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()

    for handler in (
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(log_dir / LOG_FILE_NAME),
    ):
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
        _installed_handlers.append(handler)
    root_logger.setLevel(log_level)

    # Per-request SQL only in development
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.ENVIRONMENT == "development" else logging.WARNING
    )
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("livekit").setLevel(logging.WARNING)
