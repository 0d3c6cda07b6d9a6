"""
Logging Configuration

Stdlib logging for the API process and the Celery workers:
- JSON lines in production (or with ``OBSERVABILITY_LOG_FORMAT=json``)
- a compact text format otherwise
- request and scan correlation ids carried in context variables and
  stamped on every record by ``ContextualFilter``
"""

import json
import logging
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from lawwatch.core.config import settings

REQUEST_ID_VAR: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
SCAN_ID_VAR: ContextVar[Optional[str]] = ContextVar('scan_id', default=None)

# LogRecord attributes that are not caller-supplied ``extra`` fields
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord('', 0, '', 0, '', (), None)).keys()
) | {'message', 'asctime', 'taskName', 'request_id', 'scan_id', 'service'}

_QUIET_LOGGERS = ("sqlalchemy.pool", "aiohttp", "asyncio", "celery.redirected")


class ContextualFilter(logging.Filter):
    """Stamps correlation ids and the service identity on each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = REQUEST_ID_VAR.get()
        record.scan_id = SCAN_ID_VAR.get()
        record.service = f"{settings.project_name}/{settings.version} ({settings.environment.value})"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key in ("service", "request_id", "scan_id"):
            value = getattr(record, key, None)
            if value:
                entry[key] = value

        if record.exc_info:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        if self.include_extra:
            extra = self._extra_fields(record)
            if extra:
                entry["extra"] = extra

        return json.dumps(entry, ensure_ascii=False)

    @staticmethod
    def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
        extra = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            extra[key] = value
        return extra


class DevelopmentFormatter(logging.Formatter):
    """``time level logger:line message`` prefixed with any correlation ids."""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s %(levelname)-7s %(name)s:%(lineno)d %(message)s',
            datefmt='%H:%M:%S'
        )

    def format(self, record: logging.LogRecord) -> str:
        ids = [i for i in (getattr(record, 'request_id', None), getattr(record, 'scan_id', None)) if i]
        line = super().format(record)
        return f"[{' '.join(ids)}] {line}" if ids else line


def setup_logging() -> None:
    """Install a single stdout handler on the root logger."""
    use_json = settings.observability.log_format == "json" or settings.is_production

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if use_json else DevelopmentFormatter())
    handler.addFilter(ContextualFilter())
    handler.setLevel(settings.observability.log_level.value)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.debug else logging.WARNING)
    if not settings.debug:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LoggingContext:
    """
    Bind a request id and/or scan id for the duration of a ``with`` block.

    Usage:
        with LoggingContext(scan_id=scan_id):
            logger.info("...")   # record carries scan_id
    """

    def __init__(self, request_id: Optional[str] = None, scan_id: Optional[str] = None):
        self._bindings = [(var, value) for var, value in ((REQUEST_ID_VAR, request_id), (SCAN_ID_VAR, scan_id)) if value]
        self._tokens: List[Any] = []

    def __enter__(self) -> 'LoggingContext':
        self._tokens = [(var, var.set(value)) for var, value in self._bindings]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens = []


def log_exception(logger: logging.Logger, exc: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log ``exc`` at ERROR with its traceback flattened into ``extra``."""
    logger.error(
        f"{type(exc).__name__}: {exc}",
        extra={
            **(context or {}),
            "exception_type": type(exc).__name__,
            "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        }
    )


def log_performance(
    logger: logging.Logger,
    operation: str,
    duration_ms: float,
    success: bool = True,
    **context
) -> None:
    """Timing line for ``operation``; WARNING when it failed."""
    logger.log(
        logging.INFO if success else logging.WARNING,
        f"{operation} took {duration_ms:.1f} ms",
        extra={"operation": operation, "duration_ms": round(duration_ms, 1), "success": success, **context}
    )


setup_logging()

__all__ = [
    'setup_logging',
    'get_logger',
    'LoggingContext',
    'log_exception',
    'log_performance',
    'REQUEST_ID_VAR',
    'SCAN_ID_VAR'
]
