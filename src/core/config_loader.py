#!/usr/bin/env -S python3 -B -u
"""
Configuration loader for the netem bot.

Provides centralized configuration loading for all components.
"""

import os
import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from .exceptions import ConfigurationError


DEFAULT_API_URL = 'https://api.telegram.org'


def _default_config() -> Dict[str, Any]:
    """Built-in defaults, before any configuration file is applied."""
    return {
        'token': os.environ.get('NETEMBOT_TOKEN', ''),
        'api_url': DEFAULT_API_URL,
        'poll_timeout': 60,
        'retry_delay': 300,
        'retry_delay_min': 5,
        'verbose_level': 1,
        'operators': [],
        'tc': {
            'binary': 'tc',
            'use_sudo': False,
            'filter_parent': 'root',
            'timeout': None
        }
    }


def find_config_file(explicit: Optional[str] = None) -> Optional[Path]:
    """
    Locate the configuration file to use.

    Configuration file location precedence:
    1. Explicit path (command line -c/--config)
    2. Environment variable NETEMBOT_CONF (if set)
    3. ~/netembot.yaml (user's home directory)
    4. ./netembot.yaml (current directory)

    Returns:
        Path of the first existing file, or None
    """
    if explicit:
        path = Path(explicit)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {explicit}", config_file=explicit)
        return path

    config_files = []
    env_config = os.environ.get('NETEMBOT_CONF')
    if env_config:
        config_files.append(Path(env_config))

    config_files.extend([
        Path.home() / 'netembot.yaml',
        Path('./netembot.yaml')
    ])

    for config_file in config_files:
        if config_file.exists():
            return config_file
    return None


def load_bot_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load netem bot configuration with proper precedence.

    Args:
        config_path: Optional explicit configuration file

    Returns:
        Dictionary containing configuration values

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping
    """
    config = _default_config()

    config_file = find_config_file(config_path)
    if config_file is None:
        return config

    try:
        with open(config_file, 'r') as f:
            file_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_file}", config_file=str(config_file), cause=e)
    except OSError as e:
        raise ConfigurationError(f"Cannot read {config_file}: {e}", config_file=str(config_file), cause=e)

    if not isinstance(file_config, dict):
        raise ConfigurationError(
            f"Configuration in {config_file} must be a mapping",
            config_file=str(config_file)
        )

    # Deep merge for the tc section, plain update for the rest
    tc_config = file_config.pop('tc', None) or {}
    if not isinstance(tc_config, dict):
        raise ConfigurationError("The 'tc' section must be a mapping", config_file=str(config_file))
    config.update({k: v for k, v in file_config.items() if v is not None})
    config['tc'].update(tc_config)

    operators = config.get('operators') or []
    if isinstance(operators, str):
        operators = [operators]
    config['operators'] = [str(op) for op in operators]

    config['_config_file'] = str(config_file)
    return config


def get_tc_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Get traffic control settings.

    Returns:
        Dictionary with tc configuration including:
        - binary: tc executable name or path
        - use_sudo: prefix invocations with sudo -n
        - filter_parent: parent used when listing the redirect filter
        - timeout: seconds before an invocation is abandoned (None waits forever)
    """
    if config is None:
        config = load_bot_config()
    result = copy.deepcopy(_default_config()['tc'])
    result.update(config.get('tc', {}))
    return result


def get_telegram_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Get Telegram transport settings.

    Returns:
        Dictionary with token, api_url, poll_timeout, retry_delay and retry_delay_min
    """
    if config is None:
        config = load_bot_config()
    keys = ('token', 'api_url', 'poll_timeout', 'retry_delay', 'retry_delay_min')
    return {key: config.get(key, _default_config()[key]) for key in keys}
