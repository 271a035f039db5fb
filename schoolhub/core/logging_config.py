# schoolhub/core/logging_config.py - Logging setup driven by settings
import json
import logging
from logging.handlers import RotatingFileHandler

from schoolhub.core.config import settings

FORMATS = {
    "simple": "%(levelname)s - %(message)s",
    "detailed": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}


class JsonFormatter(logging.Formatter):
    """One JSON object per log line"""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record)


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter()
    return logging.Formatter(FORMATS.get(log_format, FORMATS["detailed"]))


def setup_logging() -> None:
    """Configure the root logger once from LOG_* settings"""
    root = logging.getLogger()
    if getattr(root, "_schoolhub_configured", False):
        return

    formatter = _build_formatter(settings.LOG_FORMAT)
    handlers = [logging.StreamHandler()]
    if settings.LOG_FILE_PATH:
        handlers.append(
            RotatingFileHandler(
                settings.LOG_FILE_PATH,
                maxBytes=settings.LOG_MAX_SIZE,
                backupCount=settings.LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL)

    # SQL echo is controlled by DATABASE_ECHO, keep the engine logger quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    root._schoolhub_configured = True
