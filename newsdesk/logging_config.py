"""
Structured JSON logging for pipeline observability.

Provides structured logging with trace IDs for correlating logs across one
ingestion or generation run, plus a context manager that times calls to
external generation and translation providers.
"""

import json
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime

# Context variable for trace correlation
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)

EXTRA_FIELDS = (
    "event",
    "duration_ms",
    "provider",
    "model",
    "api_version",
    "call_type",
    "article_id",
    "source",
    "tier",
    "inserted",
    "skipped",
)


# -----------------------------------------------------------------------------
# Trace context
# -----------------------------------------------------------------------------


def set_trace_id(trace_id: str | None = None) -> str:
    """Bind a trace id to the current context, generating one if needed."""
    trace_id = trace_id or str(uuid.uuid4())
    trace_id_var.set(trace_id)
    return trace_id


def get_trace_id() -> str | None:
    return trace_id_var.get()


# -----------------------------------------------------------------------------
# JSON Formatter
# -----------------------------------------------------------------------------


class JSONFormatter(logging.Formatter):
    """
    Format log records as single-line JSON.

    Output format:
    {"timestamp": "...", "level": "INFO", "message": "...", "trace_id": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        trace_id = trace_id_var.get()
        if trace_id:
            log_data["trace_id"] = trace_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """
    Configure root logging for deployment or local development.

    Args:
        json_format: If True, use JSON format. If False, use human-readable format.
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("trafilatura").setLevel(logging.WARNING)
    logging.getLogger("readability").setLevel(logging.WARNING)


# -----------------------------------------------------------------------------
# Provider call instrumentation
# -----------------------------------------------------------------------------


@contextmanager
def log_provider_call(provider: str, model: str | None, call_type: str):
    """
    Time a call to an external generation or translation provider.

    Usage:
        with log_provider_call("openai", "gpt-4o-mini", "generate"):
            raw = provider.complete(system, user)
    """
    start_time = time.time()
    logger = logging.getLogger("newsdesk.providers")

    logger.debug(
        f"Provider call started: {provider}/{model} for {call_type}",
        extra={"event": "provider_call_start", "provider": provider, "model": model, "call_type": call_type},
    )

    try:
        yield
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Provider call completed: {provider}/{model} ({duration_ms}ms)",
            extra={
                "event": "provider_call_complete",
                "provider": provider,
                "model": model,
                "call_type": call_type,
                "duration_ms": duration_ms,
            },
        )
    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.warning(
            f"Provider call failed: {provider}/{model} - {e}",
            extra={
                "event": "provider_call_failed",
                "provider": provider,
                "model": model,
                "call_type": call_type,
                "duration_ms": duration_ms,
            },
        )
        raise
