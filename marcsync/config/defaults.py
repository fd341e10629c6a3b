"""
Default configuration values for the marcsync client.

Centralized defaults that can be overridden by environment variables,
a JSON config file or explicit keyword arguments.
"""

from typing import Any, Dict

# Global default settings
DEFAULT_SETTINGS: Dict[str, Any] = {
    "api_url": "https://api.marcsync.dev",
    "websocket_url": "wss://ws.marcsync.dev/websocket",
    "request_timeout": 30.0,
    "handshake_timeout": 15.0,
    "keepalive_interval": 15.0,
    "log_level": "WARNING",
}

# REST resource prefixes
COLLECTION_PATH = "/v0/collection"
ENTRIES_PATH = "/v1/entries"

# Reads go through PATCH with a method override so filters travel in the body
READ_OVERRIDE_PARAMS = {"methodOverwrite": "GET"}

# Hub protocol
HUB_PROTOCOL = "json"
HUB_PROTOCOL_VERSION = 1
RECORD_SEPARATOR = "\x1e"

ENV_PREFIX = "MARCSYNC_"
