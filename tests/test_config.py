"""
Unit tests for configuration loading and validation.

Tests strict validation and error handling for limit and store settings.
"""

import os
import tempfile
from decimal import Decimal

import pytest
import yaml

from velocity_guard.config.loader import (
    StoreBackend,
    StoreConfig,
    VelocityGuardConfig,
    load_config
)
from velocity_guard.core.limits import VelocityLimits


class TestConfigLoading:
    """Test configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def _valid_config(self) -> dict:
        return {
            "limits": {
                "daily_load_count": 3,
                "daily_amount": "5000.00",
                "weekly_amount": "20000.00"
            },
            "store": {
                "backend": "sqlite",
                "ttl_seconds": 600,
                "db_path": "accounts.db"
            }
        }

    def test_valid_config_loads_correctly(self):
        """Test that a valid configuration loads correctly."""
        config = load_config(self._write_config(self._valid_config()))

        assert config.limits == VelocityLimits(3, Decimal("5000.00"), Decimal("20000.00"))
        assert config.store.backend == StoreBackend.SQLITE
        assert config.store.ttl_seconds == 600
        assert config.store.db_path == "accounts.db"

    def test_store_section_is_optional(self):
        """Test that store defaults apply when the section is absent."""
        config_data = self._valid_config()
        del config_data["store"]

        config = load_config(self._write_config(config_data))

        assert config.store == StoreConfig()
        assert config.store.backend == StoreBackend.MEMORY

    def test_numeric_amounts_are_exact(self):
        """Test YAML floats become exact decimals."""
        config_data = self._valid_config()
        config_data["limits"]["daily_amount"] = 5000.1

        config = load_config(self._write_config(config_data))

        assert config.limits.daily_amount == Decimal("5000.1")

    def test_backend_is_case_insensitive(self):
        """Test backend names ignore case."""
        config_data = self._valid_config()
        config_data["store"]["backend"] = "MEMORY"

        assert load_config(self._write_config(config_data)).store.backend == StoreBackend.MEMORY

    def test_missing_file(self):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(os.path.join(self.temp_dir, "missing.yaml"))

    def test_empty_file(self):
        """Test that an empty file is rejected."""
        path = os.path.join(self.temp_dir, "empty.yaml")
        with open(path, 'w', encoding='utf-8') as f:
            f.write("")

        with pytest.raises(ValueError, match="empty"):
            load_config(path)

    def test_invalid_yaml(self):
        """Test that malformed YAML raises YAMLError."""
        path = os.path.join(self.temp_dir, "bad.yaml")
        with open(path, 'w', encoding='utf-8') as f:
            f.write("limits: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_config(path)

    def test_unknown_top_level_key(self):
        """Test that unknown top-level keys are rejected."""
        config_data = self._valid_config()
        config_data["extra"] = {}

        with pytest.raises(ValueError, match="Unknown configuration keys"):
            load_config(self._write_config(config_data))

    def test_missing_limits(self):
        """Test that the limits section is required."""
        config_data = self._valid_config()
        del config_data["limits"]

        with pytest.raises(ValueError, match="Missing required 'limits'"):
            load_config(self._write_config(config_data))

    @pytest.mark.parametrize("key", ["daily_load_count", "daily_amount", "weekly_amount"])
    def test_missing_limit(self, key):
        """Test that every limit must be given."""
        config_data = self._valid_config()
        del config_data["limits"][key]

        with pytest.raises(ValueError, match=key):
            load_config(self._write_config(config_data))

    def test_unknown_limit_key(self):
        """Test that misspelled limits are rejected."""
        config_data = self._valid_config()
        config_data["limits"]["monthly_amount"] = 1

        with pytest.raises(ValueError, match="Unknown keys in limits"):
            load_config(self._write_config(config_data))

    @pytest.mark.parametrize("value", [0, -1, 2.5, True, "3"])
    def test_invalid_load_count(self, value):
        """Test that the load count must be a positive integer."""
        config_data = self._valid_config()
        config_data["limits"]["daily_load_count"] = value

        with pytest.raises(ValueError, match="daily_load_count"):
            load_config(self._write_config(config_data))

    @pytest.mark.parametrize("value", [0, -5, "abc", [1], None])
    def test_invalid_amount(self, value):
        """Test that amounts must be positive numbers."""
        config_data = self._valid_config()
        config_data["limits"]["weekly_amount"] = value

        with pytest.raises(ValueError, match="weekly_amount"):
            load_config(self._write_config(config_data))

    def test_invalid_backend(self):
        """Test that unknown backends are rejected."""
        config_data = self._valid_config()
        config_data["store"]["backend"] = "redis"

        with pytest.raises(ValueError, match="must be one of"):
            load_config(self._write_config(config_data))

    @pytest.mark.parametrize("value", [0, -1, "300"])
    def test_invalid_ttl(self, value):
        """Test that the TTL must be a positive integer."""
        config_data = self._valid_config()
        config_data["store"]["ttl_seconds"] = value

        with pytest.raises(ValueError, match="ttl_seconds"):
            load_config(self._write_config(config_data))

    def test_unknown_store_key(self):
        """Test that unknown store keys are rejected."""
        config_data = self._valid_config()
        config_data["store"]["host"] = "localhost"

        with pytest.raises(ValueError, match="Unknown keys in store"):
            load_config(self._write_config(config_data))


class TestConfigDataclasses:
    """Test configuration dataclass validation."""

    def test_default_config_uses_standard_limits(self):
        """Test defaults match the standard velocity limits."""
        config = VelocityGuardConfig()

        assert config.limits.daily_load_count == 3
        assert config.limits.daily_amount == Decimal("5000.00")
        assert config.limits.weekly_amount == Decimal("20000.00")

    def test_limits_must_be_positive(self):
        """Test VelocityLimits rejects non-positive values."""
        with pytest.raises(ValueError, match="daily_amount"):
            VelocityLimits(daily_amount=Decimal("0"))

    def test_store_config_validation(self):
        """Test StoreConfig rejects a non-positive TTL."""
        with pytest.raises(ValueError, match="ttl_seconds"):
            StoreConfig(ttl_seconds=0)
