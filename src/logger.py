"""
Logging Configuration Module.

Provides a single place to configure application logging. Log records may carry
either plain strings or dictionaries; dictionaries are rendered as structured
JSON lines so that fields such as the repository name or the error message can
be searched in the log files.

Features:
- Rotating combined and error log files
- JSON formatting of structured (dict) messages
- Human readable console output in development mode
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def __init__(self, service: str):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "service": self.service,
            "logger": record.name,
        }
        if isinstance(record.msg, dict):
            payload.update(record.msg)
        else:
            payload["message"] = record.getMessage()

        if record.exc_info:
            payload["stack"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line console output; dict fields are appended as JSON."""

    def __init__(self):
        super().__init__(fmt="%(asctime)s [%(levelname)s]: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            fields = dict(record.msg)
            message = fields.pop("message", "")
            record = logging.makeLogRecord(
                {
                    **record.__dict__,
                    "msg": f"{message} {json.dumps(fields, default=str)}"
                    if fields
                    else message,
                    "args": None,
                }
            )
        return super().format(record)


class LogManager:
    """
    Build and own the application logger.

    Attributes:
        logger (logging.Logger): Configured logger instance
    """

    def __init__(
        self,
        app_name: str,
        log_dir: Optional[str] = "logs",
        development: bool = False,
        level: int = logging.INFO,
    ):
        """
        Configure the application logger.

        Args:
            app_name (str): Logger name, also used as the service field
            log_dir (Optional[str]): Directory for rotating log files. File logging
                is disabled when empty.
            development (bool): Add a console handler
            level (int): Minimum level to emit
        """
        self.app_name = app_name
        self.logger = logging.getLogger(app_name)
        self.logger.setLevel(level)
        self.logger.propagate = False

        # Avoid stacking handlers when the manager is built more than once
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        formatter = JsonFormatter(service=app_name)

        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

            combined = RotatingFileHandler(
                os.path.join(log_dir, "combined.log"),
                maxBytes=MAX_LOG_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
            combined.setFormatter(formatter)
            self.logger.addHandler(combined)

            errors = RotatingFileHandler(
                os.path.join(log_dir, "error.log"),
                maxBytes=MAX_LOG_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
            errors.setLevel(logging.ERROR)
            errors.setFormatter(formatter)
            self.logger.addHandler(errors)

        if development or not log_dir:
            console = logging.StreamHandler()
            console.setFormatter(ConsoleFormatter())
            self.logger.addHandler(console)
