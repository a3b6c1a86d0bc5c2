"""
Logging configuration
"""
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from .config import Settings


class SecurityFilter(logging.Filter):
    """Filter to remove sensitive information from logs"""

    SENSITIVE_KEYS = {
        "password", "token", "secret", "authorization",
        "cookie", "jwt", "bearer", "digest",
    }

    def filter(self, record):
        if isinstance(record.msg, dict):
            record.msg = self._sanitize_dict(record.msg)

        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                self._sanitize_dict(arg) if isinstance(arg, dict) else arg
                for arg in record.args
            )

        return True

    def _sanitize_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        sanitized = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(sensitive in key_lower for sensitive in self.SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_dict(value)
            else:
                sanitized[key] = value
        return sanitized


class CustomJSONFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps service metadata on every record"""

    def __init__(self, *args, settings: Settings, **kwargs):
        super().__init__(*args, **kwargs)
        self.service = settings.app_name
        self.version = settings.app_version
        self.environment = settings.environment

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = self.service
        log_record["version"] = self.version
        log_record["environment"] = self.environment


def setup_logging(settings: Settings) -> None:
    """Configure the root logger for the process"""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if settings.log_format == "json":
        formatter = CustomJSONFormatter(
            "%(timestamp)s %(level)s %(logger)s %(message)s",
            settings=settings,
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    console_handler.setFormatter(formatter)
    console_handler.addFilter(SecurityFilter())
    root_logger.addHandler(console_handler)

    configure_third_party_loggers(settings)

    get_logger(__name__).info(
        "Logging configured (level=%s, format=%s, environment=%s)",
        settings.log_level,
        settings.log_format,
        settings.environment,
    )


def configure_third_party_loggers(settings: Settings) -> None:
    sqlalchemy_level = logging.INFO if settings.db_echo else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(sqlalchemy_level)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
