"""Persistence of default conversion settings.

Settings are stored as the flat camelCase JSON mapping produced by
settings_to_dict().
"""

import json
import logging
from pathlib import Path
from typing import Optional, Tuple

from .errors import SettingsError
from .models import (
    CONFIG_FILE,
    DEFAULT_SETTINGS,
    VectorizationSettings,
    settings_from_dict,
    settings_to_dict,
)

logger = logging.getLogger(__name__)


class ConfigManager:
    """Handles loading and saving of the user's default settings."""

    def __init__(self, config_path: Path = CONFIG_FILE):
        """Initialize config manager.

        Args:
            config_path: Path to configuration file (defaults to ~/.cutsvg_config.json)
        """
        self.config_path = Path(config_path)

    def load(self) -> VectorizationSettings:
        """Load saved settings, returning defaults if missing or invalid.

        Returns:
            VectorizationSettings with saved values overlaid on the defaults
        """
        if not self.config_path.exists():
            return DEFAULT_SETTINGS

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise SettingsError("Config file must contain a JSON object")
            settings = settings_from_dict(data)
        except (OSError, json.JSONDecodeError, SettingsError) as e:
            logger.warning("Could not load config file %s: %s", self.config_path, e)
            return DEFAULT_SETTINGS

        logger.info("Loaded configuration from %s", self.config_path)
        return settings

    def save(self, settings: VectorizationSettings) -> Tuple[bool, Optional[str]]:
        """Save settings to file.

        Args:
            settings: Settings to persist

        Returns:
            Tuple of (success: bool, error_message: Optional[str])
        """
        try:
            settings.validate()
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(settings_to_dict(settings), f, indent=2)
        except (OSError, SettingsError) as e:
            return False, str(e)

        logger.info("Saved configuration to %s", self.config_path)
        return True, None
