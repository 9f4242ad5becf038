"""YAML config loader with runtime get/set."""

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from limit_engine.config.schema import EngineConfig


def load_config(path: str | Path) -> EngineConfig:
    """Load and validate config from a YAML file.

    An empty file yields the defaults.
    """
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    return EngineConfig(**raw)


def config_hash(config: EngineConfig) -> str:
    """Compute a deterministic SHA256 hash of the config."""
    data = config.model_dump_json(indent=None)
    return hashlib.sha256(data.encode()).hexdigest()[:16]


def get_config_value(config: EngineConfig, dotted_key: str) -> Any:
    """Get a config value by dotted key path. E.g. 'scheduler.interval_seconds'."""
    obj: Any = config
    for part in dotted_key.split("."):
        if hasattr(obj, part):
            obj = getattr(obj, part)
        elif isinstance(obj, dict) and part in obj:
            obj = obj[part]
        else:
            raise KeyError(f"Config key not found: {dotted_key}")
    return obj


def set_config_value(config: EngineConfig, dotted_key: str, value: Any) -> EngineConfig:
    """Set a config value by dotted key path and re-validate.

    Returns a new EngineConfig instance.
    """
    data = json.loads(config.model_dump_json())
    parts = dotted_key.split(".")
    target = data
    for part in parts[:-1]:
        if part not in target:
            raise KeyError(f"Config key not found: {dotted_key}")
        target = target[part]
    if parts[-1] not in target:
        raise KeyError(f"Config key not found: {dotted_key}")
    old_value = target[parts[-1]]
    if isinstance(value, str):
        if isinstance(old_value, bool):
            value = value.lower() in ("1", "true", "yes", "on")
        elif isinstance(old_value, int):
            value = int(value)
        elif isinstance(old_value, float):
            value = float(value)
    target[parts[-1]] = value
    return EngineConfig(**data)
