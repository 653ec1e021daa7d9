"""
Settings Module for Segment Display Reader

Provides persistent storage for reader configuration and capture source
using JSON. Settings are stored in config.json in the working directory.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional

from segreader.config import ReaderConfiguration

logger = logging.getLogger(__name__)

# Settings file location (working directory)
SETTINGS_FILE = Path("config.json")

# Default settings
DEFAULT_SETTINGS: Dict[str, Any] = {
    **ReaderConfiguration().to_dict(),
    "source": "screen",
    "camera_index": 0,
    "region": [0, 0, 320, 120],
}


def load_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load settings from config.json.

    Args:
        path: Settings file (default SETTINGS_FILE)

    Returns:
        Settings dictionary. Returns defaults if file missing or invalid.
    """
    path = path or SETTINGS_FILE
    if not path.exists():
        logger.debug("Settings file not found, using defaults")
        return dict(DEFAULT_SETTINGS)

    try:
        with open(path, 'r', encoding='utf-8') as f:
            settings = json.load(f)

        if not isinstance(settings, dict):
            raise ValueError("settings root must be an object")

        # Merge with defaults to handle missing keys
        result = dict(DEFAULT_SETTINGS)
        result.update(settings)
        logger.debug(f"Settings loaded: {result}")
        return result

    except (json.JSONDecodeError, ValueError, IOError) as e:
        logger.warning(f"Failed to load settings: {e}, using defaults")
        return dict(DEFAULT_SETTINGS)


def save_settings(settings: Dict[str, Any], path: Optional[Path] = None) -> None:
    """
    Save settings to config.json.

    Args:
        settings: Settings dictionary to save
        path: Settings file (default SETTINGS_FILE)
    """
    path = path or SETTINGS_FILE
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(settings, f, indent=2)
        logger.debug(f"Settings saved: {settings}")
    except IOError as e:
        logger.error(f"Failed to save settings: {e}")


def configuration_from_settings(settings: Dict[str, Any]) -> ReaderConfiguration:
    """Build a ReaderConfiguration from the reader keys of a settings dict."""
    return ReaderConfiguration.from_dict(settings)


def update_settings(settings: Dict[str, Any], config: ReaderConfiguration) -> Dict[str, Any]:
    """
    Copy the configuration into a settings dict.

    Args:
        settings: Settings dictionary (updated in place)
        config: Current reader configuration

    Returns:
        The same settings dictionary
    """
    settings.update(config.to_dict())
    return settings
