"""
billing_engines.tracer -- BILLING_ENGINE_TRACE records for pure engines.

``@traced_engine`` logs one DEBUG record per call with the engine name and
version, a fingerprint of selected keyword inputs and the elapsed time.
Two calls over equal inputs (same transactions, same amounts) produce the
same fingerprint, so a balance can be tied back to the data it was
computed from.  The decorator never changes the return value or the
exception raised by the wrapped function.  Nothing is hashed unless DEBUG
is enabled for the tracer logger.

Usage:
    @traced_engine("ledger", "1.0", fingerprint_fields=("transactions",))
    def compute_balance(transactions):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import logging
import time
from collections.abc import Callable, Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from billing_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_EVENT = "BILLING_ENGINE_TRACE"


def _canonical(value: Any) -> str:
    """Stable text form: Decimals normalized, mappings key-sorted, dataclasses by field."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return _canonical(value.value)
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, date):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return type(value).__name__ + _canonical(fields)
    if isinstance(value, Mapping):
        body = ",".join(f"{k}:{_canonical(v)}" for k, v in sorted(value.items()))
        return "{" + body + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonical(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(fields: tuple[str, ...], kwargs: Mapping[str, Any]) -> str:
    """First 16 hex chars of SHA-256 over the named kwargs; absent ones hash as null."""
    text = "|".join(f"{name}={_canonical(kwargs.get(name))}" for name in fields)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Decorate a pure engine function with trace logging.

    Only keyword arguments are fingerprinted; call traced engines with
    the fingerprinted inputs passed by name.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.monotonic()
            result = func(*args, **kwargs)
            if not _logger.isEnabledFor(logging.DEBUG):
                return result
            _logger.debug(
                TRACE_EVENT,
                extra={
                    "trace_type": TRACE_EVENT,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": (
                        compute_input_fingerprint(fingerprint_fields, kwargs)
                        if fingerprint_fields
                        else ""
                    ),
                    "duration_ms": round((time.monotonic() - started) * 1000, 2),
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
