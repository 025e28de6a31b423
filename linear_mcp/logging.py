"""Structured JSON logging for linear-mcp.

Records go to stderr as single-line JSON, never to stdout, which carries the
protocol frames. An optional rotating file receives the same records.
"""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

_MAX_BYTES = 5 * 1024 * 1024  # 5MB
_BACKUP_COUNT = 3
_EXTRA_FIELDS = ("tool", "duration_ms", "error")


class JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                entry[field] = getattr(record, field)
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> logging.Logger:
    """Configure the ``linear_mcp`` logger; safe to call more than once."""
    logger = logging.getLogger("linear_mcp")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = JsonFormatter()
    stderr = logging.StreamHandler(sys.stderr)
    stderr.setFormatter(formatter)
    logger.addHandler(stderr)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(str(log_file), maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT)
        rotating.setFormatter(formatter)
        logger.addHandler(rotating)

    logger.setLevel(level.upper())
    logger.propagate = False
    return logger
