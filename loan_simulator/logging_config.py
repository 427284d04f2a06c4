"""
Structured Logging Configuration Module

JSON log lines for the API and startup code. Every line emitted while a
request is being served carries that request's correlation id.
"""

import contextvars
import logging
import json
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional


SERVICE_NAME = "loan_simulator"

# Correlation id of the request being served in this context
_correlation_id = contextvars.ContextVar('correlation_id', default=None)

_STRUCTURED_FIELDS = ("user_id", "action", "resource", "extra")


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


@contextmanager
def correlation_context(correlation_id: str):
    """Tag every log line emitted inside the block with `correlation_id`"""
    token = _correlation_id.set(correlation_id)
    try:
        yield
    finally:
        _correlation_id.reset(token)


class JSONFormatter(logging.Formatter):
    """One JSON object per record; empty fields are omitted"""

    def format(self, record):
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, 'correlation_id', None) or get_correlation_id(),
        }
        for field in _STRUCTURED_FIELDS:
            log_entry[field] = getattr(record, field, None)

        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = SERVICE_NAME) -> logging.Logger:
    """
    Route `logger_name` and its children to a single JSON stream handler.

    Calling it again replaces the handler rather than adding a second one.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Root of the logger hierarchy to configure

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger


def get_logger(name: str = SERVICE_NAME) -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               user_id: Optional[str] = None, action: Optional[str] = None,
               resource: Optional[str] = None, correlation_id: Optional[str] = None,
               extra: Optional[dict] = None):
    """
    Log a user or system action with structured fields.

    Args:
        logger: Logger to emit on
        level: Level name (info, warning, error, ...)
        message: Human readable summary
        user_id: Acting user, if any
        action: Short action name, e.g. "review_loan"
        resource: What was acted on, e.g. "loan:<id>"
        correlation_id: Overrides the id of the request in progress
        extra: Additional structured data
    """
    levelno = getattr(logging, level.upper())
    if not logger.isEnabledFor(levelno):
        return

    fields = {
        "user_id": user_id,
        "action": action,
        "resource": resource,
        "correlation_id": correlation_id or get_correlation_id(),
        "extra": extra,
    }
    record = logger.makeRecord(logger.name, levelno, __name__, 0, message, (), None)
    for name, value in fields.items():
        if value:
            setattr(record, name, value)

    logger.handle(record)
