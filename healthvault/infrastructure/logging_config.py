"""Logging setup for the healthvault package.

Records carry the submission they belong to: the workflow passes
``submission_id`` and ``stage`` via ``extra=``, and both output formats
show them so one submission can be followed across its stages.

Security Impact:
    - Callers log ids, hashes, stages and error codes, never PHI
    - Only the known context attributes are copied into JSON output, so an
      accidental ``extra={"patient_name": ...}`` is not emitted
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

# Attributes attached by the workflow via ``extra=``
CONTEXT_FIELDS = ("submission_id", "stage")

# Placeholder for records logged outside a submission
NO_CONTEXT = "-"

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(submission_id)s %(stage)s] %(message)s"


class SubmissionContextFilter(logging.Filter):
    """Give every record the submission context attributes.

    Records logged outside a submission get NO_CONTEXT, so the text format
    can reference the attributes unconditionally.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, NO_CONTEXT)
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with submission context when present."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Parameters:
            record: Log record to format

        Returns:
            JSON string representation of log record
        """
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_data: Dict[str, Any] = {
            "timestamp": created.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, NO_CONTEXT)
            if value != NO_CONTEXT:
                log_data[name] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(use_json: bool = False, log_level: str = "INFO") -> None:
    """Configure the ``healthvault`` logger hierarchy.

    Replaces any handler installed by an earlier call and stops propagation
    to the root logger.

    Parameters:
        use_json: One JSON object per line instead of the text format
        log_level: Logging level name, case-insensitive
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    package_logger = logging.getLogger("healthvault")
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(SubmissionContextFilter())

    if use_json:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)
    package_logger.addHandler(handler)
    package_logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Logger for a healthvault module (typically ``__name__``)."""
    return logging.getLogger(name)
