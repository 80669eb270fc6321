"""
Configuration management and loading.

Handles velocity limit and account store settings.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, Dict

import yaml

from velocity_guard.core.limits import VelocityLimits
from velocity_guard.storage.db import DEFAULT_DB_PATH
from velocity_guard.storage.store import DEFAULT_TTL_SECONDS


class StoreBackend(Enum):
    """Where account state is kept between requests."""
    MEMORY = "memory"
    SQLITE = "sqlite"


@dataclass(frozen=True)
class StoreConfig:
    """Account store settings."""
    backend: StoreBackend = StoreBackend.MEMORY
    ttl_seconds: int = DEFAULT_TTL_SECONDS
    db_path: str = DEFAULT_DB_PATH

    def __post_init__(self):
        """Validate store values."""
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if not self.db_path:
            raise ValueError("db_path cannot be empty")


@dataclass(frozen=True)
class VelocityGuardConfig:
    """Complete application configuration."""
    limits: VelocityLimits = field(default_factory=VelocityLimits)
    store: StoreConfig = field(default_factory=StoreConfig)


def load_config(path: str) -> VelocityGuardConfig:
    """Load and validate configuration from YAML file.

    Strict validation ensures a typo never silently falls back to a
    default limit.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated VelocityGuardConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'limits', 'store'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    if 'limits' not in raw_config:
        raise ValueError("Missing required 'limits' section")

    limits_data = raw_config['limits']
    if not isinstance(limits_data, dict):
        raise ValueError("'limits' must be a dictionary")
    limits = _parse_limits(limits_data)

    store_data = raw_config.get('store', {})
    if not isinstance(store_data, dict):
        raise ValueError("'store' must be a dictionary")
    store = _parse_store(store_data)

    return VelocityGuardConfig(limits=limits, store=store)


def _parse_limits(data: Dict[str, Any]) -> VelocityLimits:
    """Parse and validate the limits section.

    Every limit is required so the effective values are always visible in
    the file.

    Raises:
        ValueError: If configuration is invalid
    """
    allowed_keys = {'daily_load_count', 'daily_amount', 'weekly_amount'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in limits: {unknown_keys}")

    for key in sorted(allowed_keys):
        if key not in data:
            raise ValueError(f"Missing required '{key}' in limits")

    count = data['daily_load_count']
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise ValueError("'daily_load_count' in limits must be a positive integer")

    return VelocityLimits(
        daily_load_count=count,
        daily_amount=_parse_amount(data['daily_amount'], 'limits.daily_amount'),
        weekly_amount=_parse_amount(data['weekly_amount'], 'limits.weekly_amount')
    )


def _parse_store(data: Dict[str, Any]) -> StoreConfig:
    """Parse and validate the optional store section."""
    allowed_keys = {'backend', 'ttl_seconds', 'db_path'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in store: {unknown_keys}")

    backend = StoreBackend.MEMORY
    if 'backend' in data:
        backend_str = data['backend']
        if not isinstance(backend_str, str):
            raise ValueError("'backend' in store must be a string")
        try:
            backend = StoreBackend(backend_str.lower())
        except ValueError:
            valid_backends = [backend.value for backend in StoreBackend]
            raise ValueError(f"'backend' in store must be one of: {valid_backends}")

    ttl = data.get('ttl_seconds', DEFAULT_TTL_SECONDS)
    if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
        raise ValueError("'ttl_seconds' in store must be a positive integer")

    db_path = data.get('db_path', DEFAULT_DB_PATH)
    if not isinstance(db_path, str) or not db_path:
        raise ValueError("'db_path' in store must be a non-empty string")

    return StoreConfig(backend=backend, ttl_seconds=ttl, db_path=db_path)


def _parse_amount(value: Any, path: str) -> Decimal:
    """Convert a YAML number or string to a positive Decimal.

    Floats go through ``str`` so ``5000.0`` becomes ``Decimal('5000.0')``
    rather than its binary expansion.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"'{path}' must be a number")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"'{path}' must be a number")
    if not amount.is_finite() or amount <= 0:
        raise ValueError(f"'{path}' must be > 0")
    return amount
