"""Tests for configuration defaults and env overrides."""

from __future__ import annotations

import pytest
import structlog

from showingdesk.core.config import AppSettings, EscalationConfig
from showingdesk.core.logging import configure_logging


def test_default_settings():
    settings = AppSettings()
    assert settings.environment == "dev"
    assert settings.backend == "memory"
    assert settings.escalation.handler_role == "showing_agent"


def test_escalation_config_defaults():
    config = EscalationConfig()
    assert config.default_response_timeout_seconds == 300
    assert config.max_escalation_duration_seconds == 900
    assert config.public_reevaluation_interval_seconds == 900


def test_escalation_env_override(monkeypatch):
    monkeypatch.setenv("SHOWINGDESK_ESCALATION_DEFAULT_RESPONSE_TIMEOUT_SECONDS", "30")
    monkeypatch.setenv("SHOWINGDESK_ESCALATION_PUBLIC_REEVALUATION_INTERVAL_SECONDS", "120")
    config = EscalationConfig()
    assert config.default_response_timeout_seconds == 30
    assert config.public_reevaluation_interval_seconds == 120


def test_configure_logging_json_renderer():
    try:
        configure_logging("warning", json=True)
        config = structlog.get_config()
        assert isinstance(config["processors"][-1], structlog.processors.JSONRenderer)
    finally:
        structlog.reset_defaults()


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(KeyError):
        configure_logging("chatty")
