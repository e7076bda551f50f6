"""Configuration loader with multi-source support."""

import toml
import os
from pathlib import Path
from typing import Dict, Any, Optional
import platformdirs
from pydantic import ValidationError as PydanticValidationError

from ..errors import ConfigurationError
from ..logging_config import get_logger
from .schema import Config

logger = get_logger(__name__)

DEFAULTS_PATH = Path(__file__).parent / "defaults.toml"


class ConfigLoader:
    """Loads configuration from multiple sources with priority.

    Later sources win: packaged defaults, an explicit file, the system file,
    the user file, then ``PIPEIO_<SECTION>_<KEY>`` environment variables.
    """

    def __init__(self, app_name: str = "pipeio") -> None:
        self.app_name = app_name

    def load(self, config_path: Optional[Path] = None) -> Config:
        """Load configuration from all sources.

        Args:
            config_path: Optional explicit config file, merged over the defaults

        Returns:
            Validated configuration object

        Raises:
            ConfigurationError: If a file cannot be parsed or a value is invalid
        """
        config_dict = self._read_toml(DEFAULTS_PATH)

        if config_path is not None:
            if not config_path.exists():
                raise ConfigurationError(
                    f"Config file not found: {config_path}", path=str(config_path)
                )
            config_dict = self._deep_merge(config_dict, self._read_toml(config_path))

        system_config = self._load_system_config()
        if system_config:
            config_dict = self._deep_merge(config_dict, system_config)

        user_config = self._load_user_config()
        if user_config:
            config_dict = self._deep_merge(config_dict, user_config)

        config_dict = self._apply_env_overrides(config_dict)

        try:
            return Config(**config_dict)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _read_toml(self, path: Path) -> Dict[str, Any]:
        try:
            return toml.load(path)
        except (OSError, toml.TomlDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read config file {path}: {e}", path=str(path)
            ) from e

    def _load_system_config(self) -> Optional[Dict[str, Any]]:
        """Load system-wide configuration."""
        if os.name == "nt":  # Windows
            system_path = (
                Path(os.environ.get("PROGRAMDATA", "C:\\ProgramData"))
                / self.app_name
                / "config.toml"
            )
        else:  # Linux/Mac
            system_path = Path(f"/etc/{self.app_name}/config.toml")

        if system_path.exists():
            return self._read_toml(system_path)

        return None

    def _load_user_config(self) -> Optional[Dict[str, Any]]:
        """Load user-specific configuration."""
        user_config_dir = platformdirs.user_config_dir(appname=self.app_name, appauthor=False)
        user_config_path = Path(user_config_dir) / "config.toml"

        logger.debug(f"Looking for user config at {user_config_path}")

        if user_config_path.exists():
            return self._read_toml(user_config_path)

        return None

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Override config with environment variables."""
        prefix = f"{self.app_name.upper().replace('-', '_')}_"

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(prefix):
                continue

            # PIPEIO_PIPE_CHUNK_SIZE -> pipe.chunk_size (keys keep their underscores)
            section, _, key = env_key[len(prefix):].lower().partition("_")
            if not key:
                continue

            current = config.setdefault(section, {})
            if not isinstance(current, dict):
                continue
            current[key] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str) -> Any:
        """Convert string environment variable to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        return value

