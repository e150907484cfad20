"""Application logging configuration."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "voicetap"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_RECORD_ATTRS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "exc_info",
    "exc_text",
    "message",
    "taskName",
    "thread",
    "threadName",
}


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS:
                log_data[key] = value
        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    json_output: bool = False,
    rotate_max_bytes: int = 1_000_000,
    rotate_backup_count: int = 3,
) -> None:
    """Configure the application logger.

    Args:
        level: Level name applied to the logger and its handlers.
        log_dir: Directory for ``app.log``. No file handler when None.
        json_output: Emit JSON lines instead of plain text.
        rotate_max_bytes: Size at which the log file rotates.
        rotate_backup_count: Number of rotated files kept.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter: logging.Formatter
    if json_output:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(DEFAULT_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_file: Optional[Path] = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "app.log"
        file_handler = RotatingFileHandler(
            filename=log_file,
            maxBytes=rotate_max_bytes,
            backupCount=rotate_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.propagate = False
    root_logger.info("Logging configured: level=%s, json=%s, file=%s", level, json_output, log_file)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the application namespace, e.g. ``voicetap.recorder``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
