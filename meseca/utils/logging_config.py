"""
Logging configuration for the gateway and the supervisor

Relayed child output carries ``service`` and ``stream`` attributes. The text
formatter prints those lines as the child wrote them, behind a timestamp,
so the console reads like the combined output of every backend. The JSON
formatter keeps them as fields, together with the backend call timings.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from meseca.config import Settings, get_settings

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CHILD_OUTPUT_FORMAT = "%(asctime)s %(message)s"

# Record attributes copied into JSON log entries when present
STRUCTURED_FIELDS = ("service", "stream", "status_code", "duration_seconds")


def is_child_output(record: logging.LogRecord) -> bool:
    return getattr(record, "service", None) is not None


class ConsoleFormatter(logging.Formatter):
    """Standard text format, with relayed child output kept bare."""

    def __init__(self):
        super().__init__(TEXT_FORMAT)
        self._child_output = logging.Formatter(CHILD_OUTPUT_FORMAT)

    def format(self, record):
        if is_child_output(record):
            return self._child_output.format(record)
        return super().format(record)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in STRUCTURED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


def setup_logging(settings: Optional[Settings] = None):
    """Setup logging configuration"""
    settings = settings or get_settings()

    formatter = JSONFormatter() if settings.log_format == "json" else ConsoleFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Child output is relayed at INFO whatever the configured level
    logging.getLogger("meseca.supervisor.process_supervisor").setLevel(logging.INFO)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
