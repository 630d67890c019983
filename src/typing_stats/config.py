"""Configuration management for Typing Stats."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

APP_SUPPORT_DIR = Path.home() / "Library" / "Application Support" / "TypingStats"

DISTANCE_FORMATS = ("mi", "ft", "both")

DEFAULT_CONFIG = {
    "sync_endpoint": "",
    "sync_auth_token": "",  # nosec B105 - Bearer token for sync authentication
    "save_debounce": 1.0,  # seconds of quiet before saving
    "flush_interval": 0.1,  # capture flush interval in seconds
    "remote_poll_interval": 60,  # 1 minute
    "dpi": 96.0,
    "distance_format": "mi",
    "selected_metrics": ["keystrokes"],
    "verbose_logging": False,
}


class Config:
    """Configuration manager for Typing Stats."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_dir: Custom configuration directory path
        """
        if config_dir:
            self.config_dir = Path(config_dir)
        else:
            # Use standard macOS application support directory
            self.config_dir = APP_SUPPORT_DIR / "config"

        self.config_file = self.config_dir / "settings.json"
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file or create default."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    config = json.load(f)
                # Merge with defaults to ensure all keys exist
                merged_config = DEFAULT_CONFIG.copy()
                merged_config.update(config)
                return merged_config
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(
                    "Could not load config file: %s. Using default configuration.", e
                )

        return DEFAULT_CONFIG.copy()

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        return self._config.get(key, default)

    def update(self, config_dict: Dict[str, Any]) -> None:
        """Update multiple configuration values.

        Args:
            config_dict: Dictionary of configuration updates
        """
        self._config.update(config_dict)

    # Convenience properties for common settings
    @property
    def sync_endpoint(self) -> str:
        """Get sync endpoint URL."""
        return self.get("sync_endpoint", "")

    @property
    def sync_auth_token(self) -> str:
        return self.get("sync_auth_token", "")

    @property
    def save_debounce(self) -> float:
        """Get the debounce delay for saves in seconds."""
        return float(self.get("save_debounce", 1.0))

    @property
    def flush_interval(self) -> float:
        return float(self.get("flush_interval", 0.1))

    @property
    def remote_poll_interval(self) -> float:
        return float(self.get("remote_poll_interval", 60))

    @property
    def dpi(self) -> float:
        """Get pointer DPI, ignoring non-positive values."""
        value = self.get("dpi", 96.0)
        try:
            value = float(value)
        except (TypeError, ValueError):
            return 96.0
        return value if value > 0 else 96.0

    @property
    def distance_format(self) -> str:
        value = self.get("distance_format", "mi")
        return value if value in DISTANCE_FORMATS else "mi"

    @property
    def selected_metrics(self) -> List[str]:
        return list(self.get("selected_metrics", ["keystrokes"]))

    @property
    def verbose_logging(self) -> bool:
        """Get verbose logging setting."""
        return self.get("verbose_logging", False)

    @property
    def data_dir(self) -> Path:
        """Get data directory path."""
        data_dir = self.get("data_dir")
        if data_dir:
            return Path(data_dir)
        return get_default_data_dir()


def load_config_from_env() -> Dict[str, Any]:
    """Load configuration from environment variables.

    Returns:
        Configuration dictionary from environment
    """
    env_config: Dict[str, Any] = {}

    # Map environment variables to config keys
    env_mappings = {
        "TYPING_STATS_DATA_DIR": "data_dir",
        "TYPING_STATS_ENDPOINT": "sync_endpoint",
        "TYPING_STATS_AUTH_TOKEN": "sync_auth_token",  # nosec B105
        "TYPING_STATS_SAVE_DEBOUNCE": "save_debounce",
        "TYPING_STATS_FLUSH_INTERVAL": "flush_interval",
        "TYPING_STATS_POLL_INTERVAL": "remote_poll_interval",
        "TYPING_STATS_DPI": "dpi",
        "TYPING_STATS_DISTANCE_FORMAT": "distance_format",
        "TYPING_STATS_VERBOSE": "verbose_logging",
    }

    for env_var, config_key in env_mappings.items():
        value = os.getenv(env_var)
        if value is not None:
            # Type conversion based on default values
            if config_key in [
                "save_debounce",
                "flush_interval",
                "remote_poll_interval",
                "dpi",
            ]:
                try:
                    env_config[config_key] = float(value)
                except ValueError:
                    logger.warning("Invalid numeric value for %s: %s", env_var, value)
            elif config_key == "verbose_logging":
                env_config[config_key] = value.lower() in ("true", "1", "yes", "on")
            else:
                env_config[config_key] = value

    return env_config


def get_default_data_dir() -> Path:
    """Get the default data directory for the current user.

    Returns:
        Path to default data directory
    """
    return APP_SUPPORT_DIR / "data"


# Global config instance
_global_config: Optional[Config] = None


def get_config() -> Config:
    """Get global configuration instance.

    Returns:
        Global Config instance
    """
    global _global_config
    if _global_config is None:
        _global_config = Config()
        # Apply environment variable overrides
        env_config = load_config_from_env()
        if env_config:
            _global_config.update(env_config)
    return _global_config


def reload_config() -> Config:
    """Reload configuration from file.

    Returns:
        Reloaded Config instance
    """
    global _global_config
    _global_config = None
    return get_config()
