"""
Structured logging for LingoMesh.

One root configuration for the API process and the Celery workers. Every
record is enriched with the request and tenant bound to the current context,
so log lines from providers, the cache and background jobs can be correlated
with the HTTP request that caused them.
"""

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path

from lingomesh.core.config import settings

# =============================================================================
# Log Context
# =============================================================================

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
tenant_id_var: ContextVar[str | None] = ContextVar("tenant_id", default=None)

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    "request_id": request_id_var,
    "tenant_id": tenant_id_var,
}

# Attributes every LogRecord carries; anything else came in through `extra=`
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def current_context() -> dict[str, str]:
    """Context fields bound to the running task or thread."""
    context = {}
    for name, var in _CONTEXT_VARS.items():
        value = var.get()
        if value:
            context[name] = value
    return context


def set_tenant_id(tenant_id: str | None) -> None:
    tenant_id_var.set(tenant_id)


@contextmanager
def log_context(**fields: str | None) -> Iterator[None]:
    """
    Bind context fields for the duration of a block.

    Unknown field names raise KeyError. Empty values leave the current
    binding alone. Previous values are restored on exit.

    Example:
        with log_context(request_id="abc123"):
            logger.info("Translating")
    """
    tokens = [
        (_CONTEXT_VARS[name], _CONTEXT_VARS[name].set(value))
        for name, value in fields.items()
        if value
    ]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per record: level, logger, message, context and extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **current_context(),
        }
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)
        payload["location"] = f"{record.module}.{record.funcName}:{record.lineno}"

        return json.dumps(payload, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Coloured single-line output for local development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        context = current_context()
        if "request_id" in context:
            context["request_id"] = context["request_id"][:8]
        context_str = " ".join(f"{key}={value}" for key, value in context.items())
        if context_str:
            context_str = f" [{context_str}]"

        line = (
            f"{color}{timestamp} {record.levelname:8s}{self.RESET} "
            f"{record.name}{context_str}: {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# Configuration
# =============================================================================


def _build_handlers(formatter: logging.Formatter) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    if settings.log_output in ("stdout", "both"):
        handlers.append(logging.StreamHandler(sys.stdout))

    if settings.log_output in ("file", "both"):
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging() -> None:
    """
    (Re)configure the root logger from settings.

    Safe to call more than once; existing root handlers are replaced.
    """
    level = getattr(logging, settings.log_level)
    formatter = JSONFormatter() if settings.log_format == "json" else TextFormatter()

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    for handler in _build_handlers(formatter):
        handler.setLevel(level)
        root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; call with ``__name__``."""
    return logging.getLogger(name)


configure_logging()
