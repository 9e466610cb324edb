"""
Centralized configuration for the DVLS operator.

Defaults can be overridden by an optional YAML file, and environment
variables override both.

Usage:
    from dvls_operator.config import get_config
    cfg = get_config()
    print(cfg.dvls_base_uri)       # "https://dvls.example.com"
    print(cfg.requeue_interval)    # 60.0
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

DEFAULT_REQUEUE_INTERVAL = 60.0
DEFAULT_DEGRADED_REQUEUE_INTERVAL = 30.0

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def parse_duration(value: str | int | float) -> float:
    """Parse a duration in seconds or Go notation ("1m", "90s", "1h30m").

    Raises ValueError for anything else.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, int | float):
        return float(value)
    text = value.strip()
    if not text:
        raise ValueError("empty duration")
    try:
        return float(text)
    except ValueError:
        pass
    total = 0.0
    pos = 0
    for m in _DURATION_PART.finditer(text):
        if m.start() != pos:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    if pos != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return total


def _interval(raw: Any, default: float, name: str, *, allow_zero: bool = False) -> float:
    """Parse an interval setting, falling back to the default on bad input."""
    try:
        seconds = parse_duration(raw)
    except ValueError:
        logger.warning("Invalid %s %r, using default %ss", name, raw, default)
        return default
    if seconds < 0 or (seconds == 0 and not allow_zero):
        logger.warning("Non-positive %s %r, using default %ss", name, raw, default)
        return default
    return seconds


def _flag(raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return default


@dataclass(frozen=True)
class OperatorConfig:
    """Top-level operator configuration."""

    # DVLS
    dvls_base_uri: str = ""
    dvls_app_key: str = ""
    dvls_app_secret: str = ""
    request_timeout: float = 10.0
    verify_tls: bool = True

    # Reconciliation
    requeue_interval: float = DEFAULT_REQUEUE_INTERVAL
    degraded_requeue_interval: float = DEFAULT_DEGRADED_REQUEUE_INTERVAL

    # Watch scope; empty = cluster-wide
    namespace: str = ""

    log_level: str = "INFO"

    def validate(self) -> list[str]:
        """Return a list of configuration problems (empty when runnable)."""
        problems = []
        if not self.dvls_base_uri:
            problems.append("DVLS_BASE_URI is not set")
        if not self.dvls_app_key:
            problems.append("DVLS_APP_KEY is not set")
        if not self.dvls_app_secret:
            problems.append("DVLS_APP_SECRET is not set")
        return problems

    def __repr__(self) -> str:
        # Keep the app secret out of logs and tracebacks
        secret = "***" if self.dvls_app_secret else ""
        return (
            f"OperatorConfig(dvls_base_uri={self.dvls_base_uri!r}, "
            f"dvls_app_key={self.dvls_app_key!r}, dvls_app_secret={secret!r}, "
            f"requeue_interval={self.requeue_interval}, "
            f"degraded_requeue_interval={self.degraded_requeue_interval}, "
            f"namespace={self.namespace!r})"
        )


# Singleton
_config: OperatorConfig | None = None

# YAML keys map 1:1 onto field names
_FIELD_NAMES = {f.name for f in fields(OperatorConfig)}


def get_config() -> OperatorConfig:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _apply_env(OperatorConfig())
    return _config


def load_config(path: Path | str) -> OperatorConfig:
    """Load config from a YAML file, then apply environment overrides.

    The result also becomes the process singleton.
    """
    global _config
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"config file {path} must contain a mapping")

    unknown = sorted(set(data) - _FIELD_NAMES)
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", path, ", ".join(unknown))

    base = OperatorConfig()
    overrides: dict[str, Any] = {}
    for key, value in data.items():
        if key not in _FIELD_NAMES or value is None:
            continue
        if key == "requeue_interval":
            overrides[key] = _interval(value, base.requeue_interval, key)
        elif key == "degraded_requeue_interval":
            overrides[key] = _interval(value, base.degraded_requeue_interval, key, allow_zero=True)
        elif key == "request_timeout":
            overrides[key] = float(value)
        elif key == "verify_tls":
            overrides[key] = _flag(value, base.verify_tls)
        else:
            overrides[key] = str(value)

    _config = _apply_env(replace(base, **overrides))
    return _config


def _apply_env(cfg: OperatorConfig) -> OperatorConfig:
    """Overlay environment variables onto a config."""
    env = os.environ
    overrides: dict[str, Any] = {}

    if "DVLS_BASE_URI" in env:
        overrides["dvls_base_uri"] = env["DVLS_BASE_URI"]
    if "DVLS_APP_KEY" in env:
        overrides["dvls_app_key"] = env["DVLS_APP_KEY"]
    if "DVLS_APP_SECRET" in env:
        overrides["dvls_app_secret"] = env["DVLS_APP_SECRET"]
    if "DVLS_REQUEST_TIMEOUT" in env:
        overrides["request_timeout"] = _interval(
            env["DVLS_REQUEST_TIMEOUT"], cfg.request_timeout, "request timeout"
        )
    if "DVLS_VERIFY_TLS" in env:
        overrides["verify_tls"] = _flag(env["DVLS_VERIFY_TLS"], cfg.verify_tls)
    if "DVLS_REQUEUE_DURATION" in env:
        overrides["requeue_interval"] = _interval(
            env["DVLS_REQUEUE_DURATION"], DEFAULT_REQUEUE_INTERVAL, "requeue duration"
        )
    if "DVLS_DEGRADED_REQUEUE_DURATION" in env:
        overrides["degraded_requeue_interval"] = _interval(
            env["DVLS_DEGRADED_REQUEUE_DURATION"],
            DEFAULT_DEGRADED_REQUEUE_INTERVAL,
            "degraded requeue duration",
            allow_zero=True,
        )
    if "DVLS_WATCH_NAMESPACE" in env:
        overrides["namespace"] = env["DVLS_WATCH_NAMESPACE"]
    if "DVLS_LOG_LEVEL" in env:
        overrides["log_level"] = env["DVLS_LOG_LEVEL"].upper()

    return replace(cfg, **overrides) if overrides else cfg


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
