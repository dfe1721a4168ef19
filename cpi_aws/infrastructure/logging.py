"""
Centralized Logging

Architectural Intent:
- Provides structured JSON logging for all adapter components
- Keeps stdout free for host protocol output; every handler writes to stderr
- Supports configurable log levels via CLI flags (--verbose, --debug)

Design Decisions:
- The dispatcher attaches action context (action, region, error kind and
  code) through logging's extra= mechanism; the JSON formatter lifts those
  fields to top-level keys so failures can be filtered without parsing text
- botocore and urllib3 stay at WARNING unless DEBUG is requested; their
  request-level chatter is only useful when debugging the wire
"""

import json
import logging
import sys
from datetime import datetime, UTC
from typing import Optional

ROOT_LOGGER = "cpi_aws"
CONTEXT_FIELDS = ("action", "region", "error_kind", "error_code")
_SDK_LOGGERS = ("botocore", "boto3", "urllib3")


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field_name in CONTEXT_FIELDS:
            value = getattr(record, field_name, None)
            if value is not None:
                log_entry[field_name] = value
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def resolve_level(name: Optional[str], default: int = logging.WARNING) -> int:
    """Translate a configured level name ("info", "DEBUG") to a logging level."""
    if not name:
        return default
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
) -> None:
    """Configure the cpi_aws logger tree.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, etc.)
        json_format: Emit one JSON object per line instead of plain text.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
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

    sdk_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _SDK_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)
