"""
Settings Loader (``billing_kernel.config``).

Responsibility
--------------
Builds the single ``BillingSettings`` object from an optional YAML file
and ``BILLING_*`` environment overrides.  Only the wiring layer and the
command-line script call ``load_settings``; services receive the values
they need through their constructors.

Precedence
----------
defaults  <  YAML file  <  environment

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or bad value  -> ``ConfigurationError``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from billing_kernel.exceptions import ConfigurationError

ENV_PREFIX = "BILLING_"

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class BillingSettings:
    """
    Runtime settings for the billing core.

    Fields:
        api_base_url:       Root URL of the REST backend.
        request_timeout:    Per-request timeout in seconds.
        dedup_database_url: SQLAlchemy URL for the processed-transaction
                            table; None keeps the record in memory only.
        strict_fetch:       True propagates a failed ledger fetch; False
                            treats that category as empty.
        log_level:          Level name for the billing_kernel logger tree.
    """

    api_base_url: str = "http://localhost:5000"
    request_timeout: float = 30.0
    dedup_database_url: str | None = None
    strict_fetch: bool = True
    log_level: str = "INFO"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def _parse_bool(setting: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(setting, f"expected a boolean, got {value!r}")


def _parse_timeout(setting: str, value: Any) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(setting, f"expected seconds, got {value!r}") from None
    if timeout <= 0:
        raise ConfigurationError(setting, "must be greater than zero")
    return timeout


def _parse_level(setting: str, value: Any) -> str:
    level = str(value).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(setting, f"unknown log level {value!r}")
    return level


def _coerce(name: str, value: Any) -> Any:
    if name == "api_base_url":
        url = str(value).strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            raise ConfigurationError(name, f"expected an http(s) URL, got {value!r}")
        return url
    if name == "request_timeout":
        return _parse_timeout(name, value)
    if name == "dedup_database_url":
        if value is None:
            return None
        return str(value).strip() or None
    if name == "strict_fetch":
        return _parse_bool(name, value)
    if name == "log_level":
        return _parse_level(name, value)
    raise ConfigurationError(name, "unknown setting")


def load_settings(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> BillingSettings:
    """
    Build settings from defaults, an optional YAML file and the environment.

    Args:
        path: YAML file with top-level keys named after the settings fields.
        env: Environment mapping (defaults to ``os.environ``).
    """
    env = os.environ if env is None else env
    values: dict[str, Any] = {}

    if path is not None:
        for key, value in load_yaml_file(Path(path)).items():
            values[key] = _coerce(key, value)

    for f in fields(BillingSettings):
        raw = env.get(f"{ENV_PREFIX}{f.name.upper()}")
        if raw is not None:
            values[f.name] = _coerce(f.name, raw)

    return replace(BillingSettings(), **values)
