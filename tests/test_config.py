"""
Unit tests for client settings and the settings loader.
"""

import json
import logging

import pytest
from pydantic import ValidationError

from marcsync.config.defaults import DEFAULT_SETTINGS
from marcsync.config.loader import configure_logging, load_settings
from marcsync.models.config import ClientSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host MARCSYNC_* variables out of these tests"""
    for key in DEFAULT_SETTINGS:
        monkeypatch.delenv(f"MARCSYNC_{key.upper()}", raising=False)


class TestClientSettings:
    """Test ClientSettings model"""

    def test_defaults(self):
        settings = ClientSettings()

        assert settings.api_url == "https://api.marcsync.dev"
        assert settings.websocket_url == "wss://ws.marcsync.dev/websocket"
        assert settings.request_timeout == 30.0
        assert settings.keepalive_interval == 15.0
        assert settings.log_level == "WARNING"

    def test_url_validation(self):
        assert ClientSettings(api_url="http://localhost:5000/").api_url == "http://localhost:5000"

        with pytest.raises(ValueError, match="API URL must start with"):
            ClientSettings(api_url="localhost:5000")
        with pytest.raises(ValueError, match="WebSocket URL must start with"):
            ClientSettings(websocket_url="https://ws.marcsync.dev")

    def test_invalid_values(self):
        with pytest.raises(ValidationError):
            ClientSettings(request_timeout=0)
        with pytest.raises(ValidationError):
            ClientSettings(log_level="LOUD")

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MARCSYNC_API_URL", "http://localhost:8080")
        monkeypatch.setenv("MARCSYNC_REQUEST_TIMEOUT", "2.5")

        settings = ClientSettings()

        assert settings.api_url == "http://localhost:8080"
        assert settings.request_timeout == 2.5


class TestLoadSettings:
    """Test settings merge order"""

    def test_file_then_env_then_overrides(self, tmp_path, monkeypatch):
        config_file = tmp_path / "marcsync.json"
        config_file.write_text(json.dumps({
            "api_url": "http://from-file:1",
            "request_timeout": 3.0,
            "handshake_timeout": 4.0,
            "unknown": True,
        }))
        monkeypatch.setenv("MARCSYNC_REQUEST_TIMEOUT", "7")

        settings = load_settings(config_file, handshake_timeout=9.0, api_url=None)

        assert settings.api_url == "http://from-file:1"
        assert settings.request_timeout == 7.0
        assert settings.handshake_timeout == 9.0

    def test_malformed_file_is_ignored(self, tmp_path):
        config_file = tmp_path / "broken.json"
        config_file.write_text("{not json")

        assert load_settings(config_file) == ClientSettings()

    def test_missing_file_is_ignored(self, tmp_path):
        assert load_settings(tmp_path / "absent.json").api_url == DEFAULT_SETTINGS["api_url"]

    def test_configure_logging(self):
        package_logger = configure_logging("debug")

        assert package_logger.name == "marcsync"
        assert package_logger.level == logging.DEBUG
        package_logger.setLevel(logging.NOTSET)
