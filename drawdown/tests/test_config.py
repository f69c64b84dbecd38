from __future__ import annotations

import pytest
from pydantic import ValidationError

from drawdown.app import create_app
from drawdown.app.config import DEFAULT_ORIGINS, AppConfig
from drawdown.core.advisory import DEFAULT_MODEL


def test_defaults_without_environment():
    config = AppConfig.from_env({})

    assert config.cors_origins == DEFAULT_ORIGINS
    assert config.log_level == "INFO"
    assert config.advisory_api_key is None
    assert config.advisory_model == DEFAULT_MODEL


def test_environment_overrides():
    config = AppConfig.from_env(
        {
            "DRAWDOWN_CORS_ORIGINS": "http://a.test, http://b.test",
            "DRAWDOWN_LOG_LEVEL": "debug",
            "API_KEY": "legacy-key",
            "DRAWDOWN_ADVISORY_MODEL": "gemini-test",
            "DRAWDOWN_ADVISORY_TIMEOUT": "12.5",
        }
    )

    assert config.cors_origins == ["http://a.test", "http://b.test"]
    assert config.log_level == "DEBUG"
    assert config.advisory_api_key == "legacy-key"
    assert config.advisory_model == "gemini-test"
    assert config.advisory_timeout == 12.5


def test_gemini_key_takes_precedence():
    config = AppConfig.from_env({"GEMINI_API_KEY": "new-key", "API_KEY": "legacy-key"})

    assert config.advisory_api_key == "new-key"


def test_invalid_timeout_is_rejected():
    with pytest.raises(ValidationError):
        AppConfig.from_env({"DRAWDOWN_ADVISORY_TIMEOUT": "0"})


def test_app_wires_advisory_client_from_config():
    app = create_app(AppConfig(advisory_api_key="abc", advisory_model="m", advisory_timeout=3))

    advisory_client = app.extensions["advisory_client"]
    assert advisory_client.api_key == "abc"
    assert advisory_client.url.endswith("/models/m:generateContent")
    assert advisory_client.timeout == 3
