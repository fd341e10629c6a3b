"""
Settings loading for the marcsync client.

Merges defaults, an optional JSON file, environment variables and explicit
overrides into a validated ClientSettings instance.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from marcsync.models.config import ClientSettings

logger = logging.getLogger(__name__)


def _read_config_file(config_file: Path) -> Dict[str, Any]:
    """Read settings from a JSON file, ignoring unreadable files"""
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load settings from {config_file}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Ignoring settings file {config_file}: expected a JSON object")
        return {}

    return data


def load_settings(
    config_file: Optional[Union[str, Path]] = None,
    **overrides: Any
) -> ClientSettings:
    """
    Build client settings.

    Priority (lowest first): defaults, ``config_file``, ``MARCSYNC_*``
    environment variables, keyword ``overrides``.

    Args:
        config_file: Optional JSON file with settings keys
        **overrides: Explicit settings values; ``None`` values are skipped

    Returns:
        Validated client settings
    """
    data: Dict[str, Any] = {}

    if config_file is not None:
        file_data = _read_config_file(Path(config_file))
        env_keys = ClientSettings().model_fields_set
        for key, value in file_data.items():
            if key not in ClientSettings.model_fields:
                logger.warning(f"Unknown setting '{key}' in {config_file}")
                continue
            # Environment variables override the file
            if key not in env_keys:
                data[key] = value

    data.update({key: value for key, value in overrides.items() if value is not None})
    return ClientSettings(**data)


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Apply a log level to the ``marcsync`` logger hierarchy.

    Library modules never install handlers; applications call this when
    they want the client's own level honoured.
    """
    if level is None:
        level = ClientSettings().log_level

    package_logger = logging.getLogger("marcsync")
    package_logger.setLevel(level.upper())
    return package_logger
