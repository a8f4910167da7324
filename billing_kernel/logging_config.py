"""
Structured JSON logging for the billing kernel.

Every record is one JSON line: ``ts``, ``level``, ``logger``,
``message``, the fields bound in LogContext, then any ``extra`` keys.
Event names are snake_case strings (``stock_adjustment_applied``); the
variable data goes in ``extra``, never in the message.
"""

__all__ = [
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
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

LOGGER_ROOT = "billing_kernel"

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

CONTEXT_FIELDS = ("correlation_id", "transaction_id", "party_key", "operation")

_context: ContextVar[dict[str, str] | None] = ContextVar("billing_log_context", default=None)


def _merged(fields: dict[str, str | None]) -> dict[str, str]:
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise TypeError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")
    current = dict(_context.get() or {})
    current.update({k: v for k, v in fields.items() if v is not None})
    return current


class LogContext:
    """
    Request-scoped log fields (correlation id, transaction id, party key,
    operation) held in a single ContextVar, so threads and asyncio tasks
    each see their own values.
    """

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set fields for the rest of the current context. None leaves a field as is."""
        _context.set(_merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get() or {})

    @classmethod
    def clear(cls) -> None:
        _context.set(None)

    @classmethod
    def bind(cls, **fields: str | None):
        """Context manager: set fields on entry, restore the previous values on exit."""
        return _bound(fields)


@contextmanager
def _bound(fields: dict[str, str | None]) -> Iterator[type[LogContext]]:
    token = _context.set(_merged(fields))
    try:
        yield LogContext
    finally:
        _context.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "taskName",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED and key not in payload
        )

        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            # Kernel errors carry a code plus structured attributes.
            code = getattr(exc, "code", None)
            if code is not None:
                payload["exc_code"] = code
            for key, value in vars(exc).items():
                if not key.startswith("_") and key != "code":
                    payload[f"exc_{key}"] = value
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``billing_kernel`` hierarchy (``get_logger("services.ledger")``)."""
    return logging.getLogger(f"{LOGGER_ROOT}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``billing_kernel`` logger.

    Only the first call has an effect until reset_logging() runs.  The
    hierarchy does not propagate to the root logger, so host applications
    keep their own formatting.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger(LOGGER_ROOT)
    root.setLevel(level)
    root.propagate = False
    root.addHandler(handler)


def reset_logging() -> None:
    """Drop handlers and allow configure_logging() again. Used by tests."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(LOGGER_ROOT)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
