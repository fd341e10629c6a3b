"""
Configuration models for the marcsync client.

Endpoints, timeouts and logging level, overridable through ``MARCSYNC_*``
environment variables.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from marcsync.config.defaults import DEFAULT_SETTINGS, ENV_PREFIX


class ClientSettings(BaseSettings):
    """Client settings with environment variable support"""
    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        str_strip_whitespace=True,
        validate_assignment=True
    )

    # Endpoints
    api_url: str = DEFAULT_SETTINGS["api_url"]
    websocket_url: str = DEFAULT_SETTINGS["websocket_url"]

    # Timeouts (seconds)
    request_timeout: float = Field(default=DEFAULT_SETTINGS["request_timeout"], gt=0)
    handshake_timeout: float = Field(default=DEFAULT_SETTINGS["handshake_timeout"], gt=0)
    keepalive_interval: float = Field(default=DEFAULT_SETTINGS["keepalive_interval"], gt=0)

    # Logging
    log_level: str = Field(
        default=DEFAULT_SETTINGS["log_level"],
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$"
    )

    @field_validator('api_url')
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Validate REST base URL format"""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('API URL must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('websocket_url')
    @classmethod
    def validate_websocket_url(cls, v: str) -> str:
        """Validate hub URL format"""
        if not v.startswith(('ws://', 'wss://')):
            raise ValueError('WebSocket URL must start with ws:// or wss://')
        return v.rstrip('/')
