"""Settings discovery and loading.

Settings live in a YAML file under a top-level ``daemon:`` mapping::

    daemon:
      tool_timeout: 10
      cron_schedules:
        daemon: "30 * * * *"
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from checkpoint.exceptions import ConfigError
from checkpoint.models.settings import DaemonSettings

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CHECKPOINT_CONFIG"


class SettingsService:
    """Service for locating and parsing the Checkpoint config file."""

    def __init__(self, home: Path | None = None) -> None:
        """Initialize the settings service.

        Args:
            home: Home directory to search. Defaults to the current user's home.
        """
        self._home = home or Path.home()

    @property
    def default_config_path(self) -> Path:
        """Get the per-user config file path."""
        return self._home / ".checkpoint" / "config.yaml"

    def find_config(self) -> Path | None:
        """Find the config file to use.

        Search order:
        1. CHECKPOINT_CONFIG environment variable
        2. ~/.checkpoint/config.yaml

        Returns:
            Path to the config file, or None to use defaults.

        Raises:
            ConfigError: If CHECKPOINT_CONFIG points at a missing file.
        """
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            path = Path(env_path).expanduser()
            if not path.is_file():
                raise ConfigError(f"{CONFIG_ENV_VAR} is set but not a file: {path}")
            return path

        if self.default_config_path.is_file():
            return self.default_config_path
        return None

    def load(self) -> DaemonSettings:
        """Load settings, falling back to defaults when no file exists.

        Returns:
            Validated DaemonSettings.

        Raises:
            ConfigError: If the file cannot be parsed or holds invalid values.
        """
        path = self.find_config()
        if path is None:
            logger.debug("No config file found, using defaults")
            return DaemonSettings(home=self._home)

        logger.debug("Loading settings from %s", path)
        return self.parse(self._read(path), source=path)

    def parse(self, data: dict[str, Any], source: Path | None = None) -> DaemonSettings:
        """Validate the ``daemon`` section of a parsed config mapping."""
        section = data.get("daemon") or {}
        if not isinstance(section, dict):
            raise ConfigError(f"'daemon' must be a mapping in {source or 'config'}")

        section.setdefault("home", self._home)
        try:
            return DaemonSettings.model_validate(section)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings in {source or 'config'}:\n{e}") from e

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read config {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must contain a mapping")
        return data
