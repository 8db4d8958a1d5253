"""Tests for LATTICEGW_* environment configuration."""

from __future__ import annotations

import pytest

from latticegw.config import load_config
from latticegw.models.config import DEFAULT_CONTROLLER_NAME

_ENV_KEYS = (
    "CONTROLLER_NAME",
    "WATCH_NAMESPACE",
    "WATCH_TIMEOUT_SECONDS",
    "WEBHOOK_ENABLED",
    "WEBHOOK_PORT",
    "LOG_LEVEL",
)


class TestLoadConfig:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for key in _ENV_KEYS:
            monkeypatch.delenv(f"LATTICEGW_{key}", raising=False)

        config = load_config()

        assert config.controller.controller_name == DEFAULT_CONTROLLER_NAME
        assert config.controller.watch_namespace == ""
        assert config.controller.watch_timeout_seconds == 300
        assert config.webhook.enabled is True
        assert config.webhook.port == 9443
        assert config.log.level == "info"

    def test_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LATTICEGW_CONTROLLER_NAME", "example.com/lattice")
        monkeypatch.setenv("LATTICEGW_WATCH_NAMESPACE", "apps")
        monkeypatch.setenv("LATTICEGW_WEBHOOK_ENABLED", "false")
        monkeypatch.setenv("LATTICEGW_WEBHOOK_CERT_FILE", "/etc/webhook/tls.crt")
        monkeypatch.setenv("LATTICEGW_LOG_LEVEL", "DEBUG")

        config = load_config()

        assert config.controller.controller_name == "example.com/lattice"
        assert config.controller.watch_namespace == "apps"
        assert config.webhook.enabled is False
        assert config.webhook.cert_file == "/etc/webhook/tls.crt"
        assert config.log.level == "debug"

    @pytest.mark.parametrize(
        ("key", "value", "expected"),
        [
            ("WATCH_TIMEOUT_SECONDS", "5", 30),
            ("WATCH_TIMEOUT_SECONDS", "99999", 3600),
            ("WEBHOOK_PORT", "80", 1024),
            ("WEBHOOK_PORT", "8443", 8443),
        ],
    )
    def test_integers_are_clamped(self, monkeypatch: pytest.MonkeyPatch, key: str, value: str, expected: int) -> None:
        monkeypatch.setenv(f"LATTICEGW_{key}", value)
        config = load_config()
        actual = config.webhook.port if key == "WEBHOOK_PORT" else config.controller.watch_timeout_seconds
        assert actual == expected

    def test_invalid_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LATTICEGW_LOG_LEVEL", "verbose")
        with pytest.raises(ValueError, match="Invalid log level"):
            load_config()

    @pytest.mark.parametrize("value", ["gateway-api-controller", "/path-only"])
    def test_invalid_controller_name(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("LATTICEGW_CONTROLLER_NAME", value)
        with pytest.raises(ValueError, match="Invalid controller name"):
            load_config()
