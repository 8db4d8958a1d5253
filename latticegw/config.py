"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from latticegw.models.config import (
    DEFAULT_CONTROLLER_NAME,
    ControllerConfig,
    LatticeGWConfig,
    LogConfig,
    WebhookConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"LATTICEGW_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_controller_name(value: str) -> str:
    # GatewayClass.spec.controllerName is a domain-prefixed path
    if "/" not in value or value.startswith("/"):
        raise ValueError(f"Invalid controller name: {value!r}. Expected <domain>/<path>")
    return value


def load_config() -> LatticeGWConfig:
    """Load configuration from LATTICEGW_* environment variables."""
    return LatticeGWConfig(
        controller=ControllerConfig(
            controller_name=_validate_controller_name(_env("CONTROLLER_NAME", DEFAULT_CONTROLLER_NAME)),
            watch_namespace=_env("WATCH_NAMESPACE", ""),
            watch_timeout_seconds=_env_int("WATCH_TIMEOUT_SECONDS", 300, min_val=30, max_val=3600),
        ),
        webhook=WebhookConfig(
            enabled=_env_bool("WEBHOOK_ENABLED", True),
            port=_env_int("WEBHOOK_PORT", 9443, min_val=1024, max_val=65535),
            cert_file=_env("WEBHOOK_CERT_FILE", ""),
            key_file=_env("WEBHOOK_KEY_FILE", ""),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
