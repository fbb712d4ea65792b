"""
Logging for the planboard service.

Everything goes through the "planboard" logger. Records carry the request id
of the HTTP request that produced them plus whichever plan fields the caller
passes to log_event (user_id, plan_id, event_type, error_code). Production
emits one JSON object per line; other environments get a readable line.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Optional

LOGGER_NAME = "planboard"

# Fields lifted from a record into structured output when present
PLAN_FIELDS = ("user_id", "plan_id", "event_type", "error_code")
REQUEST_FIELDS = ("method", "path", "status", "latency_bucket")

EXTRA_VALUE_LIMIT = 500

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_ctx_var.get()


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    """Coarse latency label for request logs."""
    if latency_ms is None:
        return "unknown"
    for bound, label in ((10, "<10ms"), (100, "10-100ms"), (500, "100-500ms"), (1000, "500-1000ms")):
        if latency_ms < bound:
            return label
    return ">=1000ms"


def _utc_stamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class RequestIdFilter(logging.Filter):
    """Stamp records with the request id bound to the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _utc_stamp(record),
            "level": record.levelname,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        for key in PLAN_FIELDS + REQUEST_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        tags = ""
        for label, key in (("rid", "request_id"), ("plan", "plan_id"), ("user", "user_id")):
            value = getattr(record, key, None)
            if value:
                tags += f" [{label}={value}]"
        line = f"{_utc_stamp(record)} {record.levelname} [{LOGGER_NAME}]{tags} {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(env: str = "development") -> None:
    """Install a single stdout handler on the planboard logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())
    logger.handlers = [handler]


def _clip(value: object) -> str:
    text = str(value)
    if len(text) <= EXTRA_VALUE_LIMIT:
        return text
    return text[:EXTRA_VALUE_LIMIT] + "...<truncated>"


def log_event(
    level: str,
    msg: str,
    *,
    user_id: Optional[str] = None,
    plan_id: Optional[str] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
) -> None:
    """
    Log a plan event on the planboard logger.

    Free-form `extra` values are stringified and clipped so a large plan
    document can never flood the log.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        configure_logging(os.getenv("ENV", "development"))

    fields: Dict[str, object] = {
        "request_id": get_request_id(),
        "user_id": user_id,
        "plan_id": plan_id,
        "event_type": event_type,
        "error_code": error_code,
    }
    for key, value in (extra or {}).items():
        fields[key] = _clip(value)

    getattr(logger, level, logger.info)(msg, extra=fields)
