"""Configuration file loading and override handling."""

import copy
from pathlib import Path
from typing import Any

import yaml

# Flat CLI overrides and the config section they belong to
OVERRIDE_SECTIONS: dict[str, tuple[str, str]] = {
    "host": ("server", "host"),
    "port": ("server", "port"),
    "transport": ("server", "transport"),
    "token": ("github", "token"),
    "cache_backend": ("cache", "backend"),
    "cache_url": ("cache", "url"),
    "log_level": ("logging", "level"),
}


def load_config_from_file(config_path: Path) -> dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Invalid YAML in config file {config_path}: {e}")

    if not isinstance(data, dict):
        raise yaml.YAMLError(f"Config file {config_path} must contain a mapping")
    return data


def apply_overrides(
    config_data: dict[str, Any], overrides: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Merge flat CLI overrides into nested configuration data.

    Args:
        config_data: Nested configuration dictionary
        overrides: Flat overrides keyed by ``OVERRIDE_SECTIONS`` names

    Returns:
        New configuration dictionary with overrides applied

    Raises:
        ValueError: If an override key is unknown
    """
    merged = copy.deepcopy(config_data)

    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if key not in OVERRIDE_SECTIONS:
            raise ValueError(f"Unknown configuration override: {key}")

        section, field = OVERRIDE_SECTIONS[key]
        merged.setdefault(section, {})[field] = value

    return merged
