"""Structured JSON logging with correlation ID support.

configure_logging() is the single startup entry point. It attaches the JSON
handler to the "staybook" logger tree and installs process-wide hooks that
report uncaught exceptions (main thread and worker threads). Calling it more
than once is a no-op.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from datetime import datetime, timezone
from typing import Any

from .correlation import get_correlation_id
from .redaction import redact_value

ROOT_LOGGER_NAME = "staybook"

_init_lock = threading.Lock()
_initialized = False


class JsonFormatter(logging.Formatter):
    """One JSON object per line for the availability service logs.

    Records logged inside a request carry its correlationId. Values passed as
    extra={"extra_fields": {...}} become top-level keys and are redacted, since
    they may hold raw property ids or driver error text.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            payload["correlationId"] = correlation_id

        fields = getattr(record, "extra_fields", None)
        if isinstance(fields, dict):
            for key, value in fields.items():
                payload.setdefault(key, redact_value(value))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the staybook tree.

    Names outside the tree (e.g. "__main__") are re-parented so their records
    reach the JSON handler.
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def _install_exception_hooks(logger: logging.Logger) -> None:
    previous_excepthook = sys.excepthook
    previous_thread_hook = threading.excepthook

    def excepthook(exc_type, exc_value, exc_tb):
        if not issubclass(exc_type, KeyboardInterrupt):
            logger.error(
                "uncaught exception",
                exc_info=(exc_type, exc_value, exc_tb),
                extra={"extra_fields": {"source": "main"}},
            )
        previous_excepthook(exc_type, exc_value, exc_tb)

    def thread_excepthook(args: threading.ExceptHookArgs) -> None:
        if args.exc_type is not SystemExit:
            logger.error(
                "uncaught exception in thread",
                exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
                extra={
                    "extra_fields": {
                        "source": "thread",
                        "thread": getattr(args.thread, "name", None),
                    }
                },
            )
        previous_thread_hook(args)

    sys.excepthook = excepthook
    threading.excepthook = thread_excepthook


def configure_logging(level: str = "INFO") -> bool:
    """Configure JSON logging and error hooks once per process.

    Raises:
        ValueError: If level is not a known logging level name. Nothing is
            attached in that case, so a later call can still succeed.

    Returns:
        True if this call performed the setup, False if it had already run.
    """
    global _initialized

    with _init_lock:
        if _initialized:
            return False

        logger = logging.getLogger(ROOT_LOGGER_NAME)
        # setLevel validates the name; it must run before any handler is added.
        logger.setLevel((level or "INFO").upper())

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.propagate = False

        _install_exception_hooks(logger)
        _initialized = True
        return True
