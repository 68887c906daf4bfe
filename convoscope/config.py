"""
Configuration management for Convoscope.

Values are layered, lowest priority first:
1. Built-in defaults (Config.DEFAULTS)
2. The user config file (~/.convoscope/config.json)
3. Environment variables (Config.ENV_MAPPINGS), optionally seeded from a
   .env.convoscope file in the working directory
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_FILE_NAME = ".env.convoscope"


class Config:
    """Layered configuration backed by a JSON file in the user's home directory."""

    DEFAULTS: dict[str, Any] = {
        "gap_minutes": 30.0,
        "page_size": 50,
        "default_sort": "date-desc",
        "default_view": "segment",
        "log_level": "WARNING",
        "read_state_file": "",
    }

    ENV_MAPPINGS: dict[str, str] = {
        "gap_minutes": "CONVOSCOPE_GAP_MINUTES",
        "page_size": "CONVOSCOPE_PAGE_SIZE",
        "default_sort": "CONVOSCOPE_DEFAULT_SORT",
        "default_view": "CONVOSCOPE_DEFAULT_VIEW",
        "log_level": "LOG_LEVEL",
        "read_state_file": "CONVOSCOPE_READ_STATE_FILE",
    }

    def __init__(self, config_dir: Path | None = None):
        if config_dir is None:
            config_dir = Path.home() / ".convoscope"
        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / "config.json"

        # Existing environment variables win over the .env file
        env_file = Path.cwd() / ENV_FILE_NAME
        if env_file.exists():
            load_dotenv(env_file, override=False)

    def _load_config_file(self) -> dict[str, Any]:
        """Read the config file, returning an empty dict when absent or corrupt."""
        if not self.config_file.exists():
            return {}

        try:
            with open(self.config_file) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable config file {self.config_file}: {e}")
            return {}

        if not isinstance(data, dict):
            return {}
        return data

    def _save_config_file(self, data: dict[str, Any]):
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w") as f:
            json.dump(data, f, indent=2)

    def _parse_value(self, value: str, key: str) -> Any:
        """Convert a string (env var or CLI argument) to the type of the key's default."""
        default = self.DEFAULTS.get(key)

        if isinstance(default, bool):
            return value.lower() in ("true", "1", "yes", "on")
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value, honouring environment overrides."""
        env_key = self.ENV_MAPPINGS.get(key, key.upper())
        env_value = os.getenv(env_key)
        if env_value is not None:
            try:
                return self._parse_value(env_value, key)
            except ValueError:
                logger.warning(f"Ignoring invalid value for {env_key}: {env_value!r}")

        file_config = self._load_config_file()
        if key in file_config:
            return file_config[key]

        return self.DEFAULTS.get(key, default)

    def get_all(self) -> dict[str, Any]:
        """Get every known configuration value."""
        return {key: self.get(key) for key in self.DEFAULTS}

    def set(self, key: str, value: Any):
        """Persist a value to the config file."""
        data = self._load_config_file()
        data[key] = value
        self._save_config_file(data)

    def unset(self, key: str):
        """Remove a value from the config file so the default applies again."""
        data = self._load_config_file()
        if key in data:
            del data[key]
            self._save_config_file(data)
