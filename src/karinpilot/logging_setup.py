"""
Structured logging for KarinPilot.

Engine modules log through ``logging.getLogger(__name__)``; this module only
installs the handler on the package logger.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone


_EXTRA_FIELDS = (
    "request_id",
    "case_id",
    "stage",
    "alert_level",
    "risk_level",
    "error_code",
    "duration_ms",
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Add extra fields if present
        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def configure_logging(level: str = "INFO", json_output: bool = True) -> logging.Logger:
    """
    Configure the ``karinpilot`` logger.

    Calling this more than once replaces the previously installed handler.

    Args:
        level: Logging level name
        json_output: Use JSONFormatter instead of a plain text format

    Returns:
        The configured package logger
    """
    logger = logging.getLogger("karinpilot")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for existing in list(logger.handlers):
        if getattr(existing, "_karinpilot_handler", False):
            logger.removeHandler(existing)

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    handler._karinpilot_handler = True
    logger.addHandler(handler)
    return logger
