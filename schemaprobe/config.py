"""Discovery configuration.

Loads ``config/discovery.yaml`` over built-in defaults. Environment variables
override the reasoning service credentials and endpoint.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/discovery.yaml")

ENV_OVERRIDES = {
    ("reasoning", "api_key"): "DEEPSEEK_API_KEY",
    ("reasoning", "base_url"): "DEEPSEEK_BASE_URL",
    ("reasoning", "model"): "DEEPSEEK_MODEL",
}


def get_default_config() -> dict[str, Any]:
    """Get default discovery configuration."""
    return {
        "discovery": {
            "max_iterations": 10,
            "complete_on_first_success": True,
            "server_generated_fields": ["id", "isActive", "createdAt", "updatedAt"],
        },
        "reasoning": {
            "base_url": "https://api.deepseek.com",
            "api_key": "",
            "model": "deepseek-reasoner",
            "strict_alternation": None,
            "temperature": 0.7,
            "max_tokens": 1000,
            "timeout_seconds": 120,
        },
        "probe": {
            "timeout_seconds": 10,
            "verify_tls": True,
            "rate_limit": {
                "requests_per_second": 5.0,
                "burst_limit": 10,
            },
        },
        "output": {
            "base_dir": "reports/discovery",
            "pretty_print": True,
        },
        "logging": {
            "level": "INFO",
            "directory": "logs",
        },
    }


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    for key, value in overrides.items():
        existing = base.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            _deep_merge(existing, value)
        else:
            base[key] = value
    return base


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load discovery configuration from a YAML file.

    Args:
        config_path: YAML file, defaults to config/discovery.yaml

    Returns:
        Defaults deep-merged with file contents and environment overrides
    """
    config = get_default_config()
    path = config_path or DEFAULT_CONFIG_PATH

    try:
        with path.open() as f:
            loaded = yaml.safe_load(f) or {}
        logger.info("Loaded discovery configuration from %s", path)
    except FileNotFoundError:
        logger.warning("Config file not found: %s. Using defaults.", path)
        loaded = {}
    except yaml.YAMLError:
        logger.exception("Error parsing discovery configuration")
        loaded = {}

    # Accept both a top-level ``schemaprobe:`` section and a bare mapping
    if isinstance(loaded, dict):
        _deep_merge(config, loaded.get("schemaprobe", loaded))

    return apply_env_overrides(config)


def apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides in place."""
    for (section, key), env_var in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            config.setdefault(section, {})[key] = value
    return config

