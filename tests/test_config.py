"""Tests for config module functionality."""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from typing_stats.config import (
    Config,
    get_config,
    get_default_data_dir,
    load_config_from_env,
    reload_config,
)


class TestConfig(unittest.TestCase):
    """Test cases for Config class."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.config = Config(config_dir=self.temp_dir)

    def tearDown(self):
        """Clean up test fixtures."""
        import shutil

        shutil.rmtree(self.temp_dir)

    def test_initialization(self):
        """Test Config initialization."""
        self.assertEqual(self.config.config_dir, Path(self.temp_dir))
        self.assertTrue(self.config.config_file.name.endswith("settings.json"))

    def test_default_values(self):
        """Test that default values are set correctly."""
        self.assertEqual(self.config.save_debounce, 1.0)
        self.assertEqual(self.config.flush_interval, 0.1)
        self.assertEqual(self.config.remote_poll_interval, 60.0)
        self.assertEqual(self.config.dpi, 96.0)
        self.assertEqual(self.config.distance_format, "mi")
        self.assertEqual(self.config.selected_metrics, ["keystrokes"])
        self.assertFalse(self.config.verbose_logging)
        self.assertEqual(self.config.sync_endpoint, "")
        self.assertEqual(self.config.sync_auth_token, "")

    def test_get_returns_default_for_missing_key(self):
        """Test get returns default for missing key."""
        result = self.config.get("nonexistent_key", "default_value")
        self.assertEqual(result, "default_value")

    def test_update_multiple_values(self):
        """Test updating multiple values at once."""
        self.config.update({"save_debounce": 2.5, "distance_format": "ft"})
        self.assertEqual(self.config.save_debounce, 2.5)
        self.assertEqual(self.config.distance_format, "ft")

    def test_property_accessors(self):
        """Test property accessors read settings loaded from file."""
        config_file = Path(self.temp_dir) / "settings.json"
        with open(config_file, "w") as f:
            json.dump(
                {
                    "save_debounce": 3,
                    "verbose_logging": True,
                    "sync_endpoint": "https://example.com",
                    "dpi": 220,
                    "distance_format": "both",
                    "selected_metrics": ["clicks", "words"],
                },
                f,
            )

        config = Config(config_dir=self.temp_dir)

        self.assertEqual(config.save_debounce, 3.0)
        self.assertTrue(config.verbose_logging)
        self.assertEqual(config.sync_endpoint, "https://example.com")
        self.assertEqual(config.dpi, 220.0)
        self.assertEqual(config.distance_format, "both")
        self.assertEqual(config.selected_metrics, ["clicks", "words"])

    def test_dpi_ignores_non_positive(self):
        """Test that non-positive or non-numeric DPI values fall back to 96."""
        self.config.update({"dpi": -5})
        self.assertEqual(self.config.dpi, 96.0)

        self.config.update({"dpi": "sharp"})
        self.assertEqual(self.config.dpi, 96.0)

    def test_distance_format_validation(self):
        """Test unknown distance formats fall back to miles."""
        self.config.update({"distance_format": "furlongs"})
        self.assertEqual(self.config.distance_format, "mi")

    def test_data_dir(self):
        """Test data_dir uses the configured path or the default."""
        self.assertEqual(self.config.data_dir, get_default_data_dir())

        self.config.update({"data_dir": self.temp_dir})
        self.assertEqual(self.config.data_dir, Path(self.temp_dir))


class TestConfigFileHandling(unittest.TestCase):
    """Test cases for config file handling edge cases."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        """Clean up test fixtures."""
        import shutil

        shutil.rmtree(self.temp_dir)

    def test_handles_corrupt_config_file(self):
        """Test handling of corrupt config file."""
        config_file = Path(self.temp_dir) / "settings.json"
        with open(config_file, "w") as f:
            f.write("not valid json {{{")

        with self.assertLogs("typing_stats.config", level="WARNING"):
            config = Config(config_dir=self.temp_dir)

        # Should use default values
        self.assertEqual(config.save_debounce, 1.0)

    def test_handles_missing_keys_in_file(self):
        """Test merging config file with missing keys."""
        config_file = Path(self.temp_dir) / "settings.json"
        with open(config_file, "w") as f:
            json.dump({"distance_format": "ft"}, f)

        config = Config(config_dir=self.temp_dir)

        # Custom value should be used
        self.assertEqual(config.distance_format, "ft")
        # Default values should be present
        self.assertEqual(config.dpi, 96.0)


class TestLoadConfigFromEnv(unittest.TestCase):
    """Test cases for loading config from environment variables."""

    def test_loads_string_values(self):
        """Test loading string values from environment."""
        with patch.dict(os.environ, {"TYPING_STATS_ENDPOINT": "https://test.com"}):
            env_config = load_config_from_env()

        self.assertEqual(env_config.get("sync_endpoint"), "https://test.com")

    def test_loads_numeric_values(self):
        """Test loading numeric values from environment."""
        with patch.dict(
            os.environ,
            {"TYPING_STATS_SAVE_DEBOUNCE": "2", "TYPING_STATS_DPI": "110.5"},
        ):
            env_config = load_config_from_env()

        self.assertEqual(env_config.get("save_debounce"), 2.0)
        self.assertEqual(env_config.get("dpi"), 110.5)

    def test_loads_boolean_values(self):
        """Test loading boolean values from environment."""
        with patch.dict(os.environ, {"TYPING_STATS_VERBOSE": "yes"}):
            env_config = load_config_from_env()

        self.assertTrue(env_config.get("verbose_logging"))

    def test_handles_invalid_number(self):
        """Test handling of invalid numeric values."""
        with patch.dict(os.environ, {"TYPING_STATS_POLL_INTERVAL": "not_a_number"}):
            with self.assertLogs("typing_stats.config", level="WARNING"):
                env_config = load_config_from_env()

        # Should not set invalid value
        self.assertNotIn("remote_poll_interval", env_config)


class TestGetConfig(unittest.TestCase):
    """Test cases for get_config singleton."""

    def setUp(self):
        """Set up test fixtures."""
        import shutil

        self.temp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.temp_dir)
        for patcher in [
            patch("typing_stats.config.APP_SUPPORT_DIR", Path(self.temp_dir)),
            patch("typing_stats.config._global_config", None),
        ]:
            patcher.start()
            self.addCleanup(patcher.stop)

    def test_returns_config_instance(self):
        """Test that get_config returns a Config instance."""
        config = reload_config()
        self.assertIsInstance(config, Config)

    def test_returns_same_instance(self):
        """Test that get_config returns the same instance."""
        reload_config()

        config1 = get_config()
        config2 = get_config()

        self.assertIs(config1, config2)

    def test_applies_environment_overrides(self):
        """Test environment variables override file settings."""
        with patch.dict(os.environ, {"TYPING_STATS_DISTANCE_FORMAT": "ft"}):
            config = reload_config()

        self.assertEqual(config.distance_format, "ft")


if __name__ == "__main__":
    unittest.main()
