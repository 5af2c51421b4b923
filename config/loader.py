import yaml
import os
from typing import Dict, Any


def _expand(value: Any) -> Any:
    if isinstance(value, str):
        expanded = os.path.expandvars(value)
        # Unset variables are left verbatim by expandvars
        if expanded.startswith("${") and expanded.endswith("}"):
            return None
        return expanded
    if isinstance(value, dict):
        return {k: _expand(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand(v) for v in value]
    return value


def load_config(config_path: str = "config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file, expanding `${VAR}` references from the environment.

    Args:
        config_path (str): Path to the configuration file

    Returns:
        dict: Configuration dictionary
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as file:
        config = yaml.safe_load(file) or {}

    return _expand(config)


def get_database_config(config_path: str = "config.yaml") -> Dict[str, Any]:
    """
    Get database-specific configuration.

    Args:
        config_path (str): Path to the configuration file

    Returns:
        dict: Database configuration
    """
    config = load_config(config_path)
    return config.get("database", {})


def get_reminders_config(config_path: str = "config.yaml") -> Dict[str, Any]:
    """Get reminder scheduler configuration (timezone, misfire grace time)."""
    config = load_config(config_path)
    return config.get("reminders", {})
