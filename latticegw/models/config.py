"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_CONTROLLER_NAME = "application-networking.k8s.aws/gateway-api-controller"


@dataclass
class ControllerConfig:
    """Identity and watch settings of the controller."""

    controller_name: str = DEFAULT_CONTROLLER_NAME
    watch_namespace: str = ""
    watch_timeout_seconds: int = 300


@dataclass
class WebhookConfig:
    """Pod mutating webhook server configuration."""

    enabled: bool = True
    port: int = 9443
    cert_file: str = ""
    key_file: str = ""


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class LatticeGWConfig:
    """Top-level latticegw configuration."""

    controller: ControllerConfig = field(default_factory=ControllerConfig)
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    log: LogConfig = field(default_factory=LogConfig)
