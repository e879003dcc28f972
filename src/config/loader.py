"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml : Static tuning checked into the repo
#                            (preview size, JPEG quality, search defaults,
#                            pacing, accepted image extensions)
#   2. .env file / env    : Secrets and endpoints via Settings
#
# Built-in defaults below apply when the YAML file is absent, so the app
# and the CLI work from any working directory.
# ──────────────────────────────────────────────────────────────────────
"""

import copy
from pathlib import Path

import yaml

from src.config.settings import Settings

_DEFAULTS: dict = {
    "normalizer": {
        "target_size": 200,
        "jpeg_quality": 82,
        "background": "#ffffff",
    },
    "search": {
        "default_limit": 3,
        "default_threshold": 0.0,
    },
    "batch": {
        "pacing_seconds": 0.0,
        "max_finished_runs": 20,
    },
    "cli": {
        "pacing_seconds": 0.5,
        "dataset_dir": "../dataset/chairs",
        "image_extensions": [".png", ".jpg", ".jpeg", ".webp", ".gif"],
    },
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge it with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings to take env overrides from; a fresh instance is
            created when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config = copy.deepcopy(_DEFAULTS)

    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
        _deep_merge(config, yaml_config)

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
            "api_base": settings.api_base,
        },
        "logging": {
            "level": settings.log_level,
        },
        "services": settings.get_configured_services(),
    }

    _deep_merge(config, env_overrides)
    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
