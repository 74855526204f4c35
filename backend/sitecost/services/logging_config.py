"""Structured logging configuration for SiteCost."""
import logging
import json
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

# Set per request by RequestTimingMiddleware
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Optional ``extra=`` fields copied onto the JSON line when present
_EXTRA_FIELDS = (
    "project_id",
    "operation",
    "duration_ms",
    "request_id",
    "http_method",
    "http_path",
    "http_status",
)


class RequestIdFilter(logging.Filter):
    """Stamps the current request's X-Request-ID onto records logged while serving it."""
    def filter(self, record):
        if not hasattr(record, "request_id"):
            request_id = request_id_ctx.get()
            if request_id is not None:
                record.request_id = request_id
        return True


class JSONFormatter(logging.Formatter):
    """JSON structured log formatter for production."""
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", json_output: bool = True):
    """Configure application logging."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
        ))

    root.handlers = [handler]

    # Suppress noisy loggers
    for name in ["uvicorn.access", "httpcore", "httpx"]:
        logging.getLogger(name).setLevel(logging.WARNING)
