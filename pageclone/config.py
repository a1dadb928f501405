"""Centralized config loading, read once at import time."""

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"

# Environment variables that override a config key when set.
_ENV_OVERRIDES = {
    "PAGECLONE_PROGRESS_DIR": "progress_dir",
    "PAGECLONE_ARCHIVE_DIR": "archive_dir",
    "PAGECLONE_PROJECT_ROOT": "project_root",
}


def _load() -> dict:
    config = yaml.safe_load(CONFIG_PATH.read_text()) or {}
    for env_name, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config[key] = value
    return config


_config = _load()


def get_config() -> dict:
    """Return the loaded config dictionary."""
    return _config
