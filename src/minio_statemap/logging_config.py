"""Logging configuration for the minio-statemap command line."""

import json
import logging
import logging.config
import os
from datetime import datetime, timezone

LOG_LEVEL_ENV = "MINIO_STATEMAP_LOG_LEVEL"
LOG_FORMAT_ENV = "MINIO_STATEMAP_LOG_FORMAT"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def setup_logging(log_level: str | None = None, json_format: bool | None = None) -> None:
    """
    Route minio_statemap logs to stderr.

    stdout carries the statemap itself, so nothing is ever logged there.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                   Defaults to MINIO_STATEMAP_LOG_LEVEL or WARNING.
        json_format: Emit JSON lines instead of plain text. Defaults to
                     MINIO_STATEMAP_LOG_FORMAT == "json".
    """
    if log_level is None:
        log_level = os.getenv(LOG_LEVEL_ENV, "WARNING")
    if json_format is None:
        json_format = os.getenv(LOG_FORMAT_ENV, "").lower() == "json"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": "minio_statemap.logging_config.JSONFormatter",
                },
                "plain": {
                    "format": "%(levelname)s %(name)s: %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_format else "plain",
                    "stream": "ext://sys.stderr",
                },
            },
            "loggers": {
                "minio_statemap": {
                    "level": log_level.upper(),
                    "handlers": ["console"],
                    "propagate": False,
                },
            },
        }
    )
