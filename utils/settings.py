"""
Settings loader - YAML configuration with environment overrides.
"""

import os
import copy
import logging
from typing import Dict, Any

import yaml
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger('Settings')

DEFAULT_SETTINGS: Dict[str, Any] = {
    'classifier': {
        'trusted_installer': 'com.android.vending',
    },
    'registry': {
        'namespace': 'sideguard',
        'key': 'newly_installed_apps',
        'state_file': None,
    },
    'source': {
        'method': 'adb',
    },
    'adb': {
        'path': 'adb',
        'serial': None,
        'aapt_path': None,
        'timeout': 30,
    },
    'http': {
        'timeout': 30,
        'max_retries': 3,
        'user_agent': 'Sideguard-Audit/1.0',
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    },
}

# Environment variable -> (section, option)
ENV_OVERRIDES = {
    'SIDEGUARD_TRUSTED_INSTALLER': ('classifier', 'trusted_installer'),
    'SIDEGUARD_STATE_FILE': ('registry', 'state_file'),
    'SIDEGUARD_ADB_SERIAL': ('adb', 'serial'),
    'SIDEGUARD_SOURCE': ('source', 'method'),
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def default_settings_path() -> str:
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(base_dir, 'config', 'settings.yaml')


def load_settings(path: str = None) -> Dict[str, Any]:
    """
    Load settings from a YAML file on top of the defaults.

    Args:
        path: Path to settings.yaml

    Returns:
        Settings dictionary
    """
    if path is None:
        path = default_settings_path()

    file_settings: Dict[str, Any] = {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            file_settings = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Settings file not found: {path}")
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML file {path}: {e}")

    if not isinstance(file_settings, dict):
        logger.error(f"Settings file {path} does not hold a mapping, using defaults")
        file_settings = {}

    settings = _merge(DEFAULT_SETTINGS, file_settings)

    for env_var, (section, option) in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            settings.setdefault(section, {})[option] = value

    return settings
