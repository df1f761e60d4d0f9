"""Centralized logging configuration for the WorkDocs application.

Sets up standard Python logging with a console handler, an optional plain
text file handler, and an optional JSON-lines handler whose records (with
their `extra=` fields) feed the session report generator.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
JSON_LOG_FILE_NAME = "combined.log"

# Attributes every LogRecord has; anything else was passed through `extra=`
_STANDARD_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JsonLinesFormatter(logging.Formatter):
    """Formats each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_"):
                entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
    json_log_dir: Optional[str] = None,
    console: bool = True,
    console_level: Optional[int] = None,
) -> None:
    """Configures the root logger for the application.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG, logging.INFO).
        log_format: The format string for console and plain file messages.
        log_file: Optional path to a plain text log file.
        json_log_dir: Optional directory for the JSON-lines session log.
        console: Whether to log to stderr (kept off the stdout the UI draws on).
        console_level: Minimum level for the console handler (defaults to log_level).
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers attached to the root logger
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_format)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(console_level if console_level is not None else log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            logging.info(f"Logging to file: {log_file}")
        except OSError as e:
            logging.error(f"Failed to set up file logging to {log_file}: {e}", exc_info=True)

    if json_log_dir:
        try:
            Path(json_log_dir).mkdir(parents=True, exist_ok=True)
            json_handler = logging.FileHandler(Path(json_log_dir) / JSON_LOG_FILE_NAME, encoding='utf-8')
            # The session log always keeps INFO so reports stay complete
            json_handler.setLevel(min(log_level, logging.INFO))
            json_handler.setFormatter(JsonLinesFormatter())
            root_logger.addHandler(json_handler)
            root_logger.setLevel(min(log_level, logging.INFO))
        except OSError as e:
            logging.error(f"Failed to set up JSON logging in {json_log_dir}: {e}", exc_info=True)

    logging.debug(f"Logging configured. Level={logging.getLevelName(log_level)}")
