"""
Structured Logging with Correlation IDs
=======================================

JSON (default) or text log lines, each stamped with the correlation id of the
unit of work it belongs to: an HTTP request (RequestCorrelationMiddleware) or
one simulation cycle (correlation_scope).

Usage:
    from core.structured_logging import configure_structured_logging, correlation_scope, log_info

    configure_structured_logging()

    with correlation_scope("sim-12"):
        log_info(logger, "Record evaluated", record_id=12, status="success")
    # {"timestamp": "...", "level": "INFO", "message": "Record evaluated",
    #  "correlation_id": "sim-12", "record_id": 12, "status": "success", ...}
"""

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from env_config import Config

_correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


def get_correlation_id() -> Optional[str]:
    return _correlation_id_ctx.get()


def set_correlation_id(correlation_id: Optional[str]):
    """Bind a correlation id; returns the token needed to restore the previous one."""
    return _correlation_id_ctx.set(correlation_id)


def generate_correlation_id(prefix: str = "req") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation id for the duration of the block, then restore."""
    correlation_id = correlation_id or generate_correlation_id("run")
    token = set_correlation_id(correlation_id)
    try:
        yield correlation_id
    finally:
        _correlation_id_ctx.reset(token)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line:

        timestamp, level, logger, message, correlation_id (when bound),
        module, function, line, engine_version, then any `extra` fields
        and the formatted exception when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": _utc_now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        correlation_id = get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        entry.update(
            module=record.module,
            function=record.funcName,
            line=record.lineno,
            engine_version=Config.ENGINE_VERSION,
        )
        entry.update(_extra_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """2026-10-19 10:30:45.123 [INFO] [sim-12] history_simulator:simulate_history:141 - ..."""

    def format(self, record: logging.LogRecord) -> str:
        line = "{ts} [{level}] [{cid}] {name}:{func}:{lineno} - {msg}".format(
            ts=_utc_now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3],
            level=record.levelname,
            cid=get_correlation_id() or "-",
            name=record.name,
            func=record.funcName,
            lineno=record.lineno,
            msg=record.getMessage(),
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class RequestCorrelationMiddleware(BaseHTTPMiddleware):
    """Use the caller's X-Request-ID (or a fresh id) for the request and echo it back."""

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(self.HEADER_NAME) or generate_correlation_id()
        token = set_correlation_id(request_id)
        try:
            response = await call_next(request)
        finally:
            _correlation_id_ctx.reset(token)
        response.headers[self.HEADER_NAME] = request_id
        return response


def configure_structured_logging(level: Optional[str] = None, format_type: Optional[str] = None) -> None:
    """
    Replace the root logger's handlers with a single stdout handler.

    Args:
        level: DEBUG/INFO/WARNING/ERROR. Defaults to Config.LOG_LEVEL.
        format_type: "json" or "text". Defaults to Config.LOG_FORMAT.
    """
    level_name = (level or Config.LOG_LEVEL).upper()
    use_json = (format_type or Config.LOG_FORMAT).lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if use_json else TextFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_with_context(logger: logging.Logger, level: int, message: str, **fields: Any) -> None:
    """
    Log with structured fields.

    Example:
        log_with_context(logger, logging.INFO, "Recommendation served",
                         group_id="diffResult", signal="Play")
    """
    logger.log(level, message, extra=fields)


def log_info(logger: logging.Logger, message: str, **fields: Any) -> None:
    log_with_context(logger, logging.INFO, message, **fields)


def log_warning(logger: logging.Logger, message: str, **fields: Any) -> None:
    log_with_context(logger, logging.WARNING, message, **fields)
