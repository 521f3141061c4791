"""
Logging for the MentorMatch service.

Every line carries the request id (and, once authenticated, the caller id)
set by the HTTP middleware. Production writes JSON lines; otherwise lines are
plain text. LOG_FILE adds a rotating file handler.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from mentormatch.core.config import get_settings


request_id_var: ContextVar[str] = ContextVar('request_id', default='')
caller_id_var: ContextVar[str] = ContextVar('caller_id', default='')

# Structured fields the helpers below attach through ``extra``
_EVENT_FIELDS = ("event_type", "entity", "entity_id", "from_state", "to_state",
                 "actor", "operation", "error_code", "http_status", "duration_ms")


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def set_caller_id(caller_id: str) -> None:
    caller_id_var.set(caller_id)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get() or None,
            "caller_id": caller_id_var.get() or None,
        }
        for field in _EVENT_FIELDS:
            if hasattr(record, field):
                entry[field] = getattr(record, field)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ContextualFormatter(logging.Formatter):
    """Plain-text lines tagged with the request and caller ids."""

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = request_id_var.get() or '-'
        record.caller_id = caller_id_var.get() or '-'
        return super().format(record)


class MentorMatchLogger(logging.Logger):

    def log_request(self, method: str, path: str, status_code: int, duration_ms: float) -> None:
        self.info(f"HTTP {method} {path} - {status_code} ({duration_ms:.2f}ms)",
                  extra={"event_type": "http_request", "http_status": status_code, "duration_ms": duration_ms})

    def log_transition(self, entity: str, entity_id: str, from_state: str, to_state: str,
                       actor: Optional[str] = None) -> None:
        """State change of an application, request or project."""
        self.info(f"{entity} {entity_id}: {from_state} -> {to_state}" + (f" by {actor}" if actor else ""),
                  extra={"event_type": "transition", "entity": entity, "entity_id": entity_id,
                         "from_state": from_state, "to_state": to_state, "actor": actor})

    def log_rejected(self, operation: str, code: str, message: str) -> None:
        """An operation refused by a business rule."""
        self.warning(f"{operation} rejected: {code} - {message}",
                     extra={"event_type": "rejected", "operation": operation, "error_code": code})

    def log_error_with_context(self, error: Exception, context: Optional[str] = None) -> None:
        self.error(f"Error in {context}: {type(error).__name__}: {error}", exc_info=error,
                   extra={"event_type": "error", "operation": context})


def _configure() -> MentorMatchLogger:
    settings = get_settings()

    logging.setLoggerClass(MentorMatchLogger)
    log = logging.getLogger("mentormatch")
    log.__class__ = MentorMatchLogger
    log.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    log.handlers.clear()

    if settings.is_production:
        formatter = JSONFormatter()
    else:
        formatter = ContextualFormatter("%(asctime)s %(levelname)-8s [%(request_id)s] [%(caller_id)s] %(message)s")

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    log.addHandler(console)

    if settings.log_file:
        path = Path(settings.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(formatter)
        log.addHandler(file_handler)

    logging.getLogger("pymongo").setLevel(logging.WARNING)
    return log


logger: MentorMatchLogger = _configure()
