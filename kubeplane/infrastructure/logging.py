"""
Centralized Logging

Architectural Intent:
- Provides structured JSON logging for all kubeplane components
- Centralizes log configuration on the "kubeplane" logger so adapters and
  managers only ever call logging.getLogger(__name__)
"""

import json
import logging
import sys
from datetime import datetime, UTC
from typing import Union


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
            error = record.exc_info[1]
            if hasattr(error, "to_dict"):
                log_entry["error"] = error.to_dict()
        return json.dumps(log_entry)


def configure_logging(
    level: Union[int, str] = logging.INFO,
    json_format: bool = False,
) -> None:
    """Configure logging for kubeplane.

    Args:
        level: Logging level, as a number or a name such as "DEBUG".
        json_format: If True, use JSON structured output. Otherwise human-readable.
    """
    if isinstance(level, str):
        name = level
        level = logging.getLevelName(name.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name}")

    root = logging.getLogger("kubeplane")
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )

    root.addHandler(handler)
