import json
import logging
from logging.config import dictConfig

from app.core.config import settings


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record):
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for attr in ("shop_id", "run_id", "order_id", "task_id"):
            if hasattr(record, attr):
                log_data[attr] = getattr(record, attr)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def configure_logging(level: str = None, fmt: str = None) -> None:
    """Configure root logging for the API process and Celery workers."""
    log_level = (level or settings.log_level).upper()
    formatter = "json" if (fmt or settings.log_format) == "json" else "default"

    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": JSONFormatter
            },
            "default": {
                "format": "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "level": log_level
            }
        },
        "loggers": {
            # urllib3 logs every request at DEBUG
            "urllib3": {"level": "WARNING"},
        },
        "root": {
            "level": log_level,
            "handlers": ["console"]
        }
    })
