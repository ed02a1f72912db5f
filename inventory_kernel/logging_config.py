"""
Structured JSON logging for the inventory valuation packages.

Every module logs through ``get_logger("<layer>.<module>")``, which hangs
the logger under the ``inventory_kernel`` namespace.  ``configure_logging``
attaches one handler that renders each record as a single JSON line:

    {"ts": ..., "level": ..., "logger": ..., "message": "fifo_lot_created",
     "run_id": ..., "product_code": 1001, ...}

Run-scoped fields (``run_id``, ``correlation_id``, ``source_file``) live in
``LogContext`` and are added to every line emitted while they are set.
Values passed through ``extra=`` are copied verbatim; UUID, date and Decimal
values are rendered as strings.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from typing import Any, TextIO

_NAMESPACE = "inventory_kernel"

CONTEXT_FIELDS: tuple[str, ...] = ("run_id", "correlation_id", "source_file")

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"inventory_log_{name}", default=None) for name in CONTEXT_FIELDS
}


class LogContext:
    """Run-scoped fields attached to every structured log line."""

    @staticmethod
    def set(
        *,
        run_id: str | None = None,
        correlation_id: str | None = None,
        source_file: str | None = None,
    ) -> None:
        """Update the given fields; ``None`` leaves a field untouched."""
        values = {"run_id": run_id, "correlation_id": correlation_id, "source_file": source_file}
        for name, value in values.items():
            if value is not None:
                _context_vars[name].set(value)

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            name: value
            for name, var in _context_vars.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(
        *,
        run_id: str | None = None,
        correlation_id: str | None = None,
        source_file: str | None = None,
    ) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        values = {"run_id": run_id, "correlation_id": correlation_id, "source_file": source_file}
        tokens = [
            (_context_vars[name], _context_vars[name].set(value))
            for name, value in values.items()
            if value is not None
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    # UUID, Decimal and non-str enums
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """Type, message, ``code`` and public attributes of a raised exception."""
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name not in ("args", "code"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a LogRecord as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{_NAMESPACE}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach the JSON handler to the ``inventory_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.  ``level``
    accepts a number or a level name such as ``"WARNING"``.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger(_NAMESPACE)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    root.propagate = False
    root.addHandler(handler)


def reset_logging() -> None:
    """Detach handlers and allow ``configure_logging`` again. Used by tests."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_NAMESPACE)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    root.propagate = True
