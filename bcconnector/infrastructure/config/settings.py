"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (e.g., ~/.bcconnector/config.yaml). Builds the
ConnectionConfig and RetryPolicy used by the command-line application.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from bcconnector.domain.exceptions import ConfigurationError
from bcconnector.domain.models.connection import ConnectionConfig
from bcconnector.infrastructure.http.httpx_transport import DEFAULT_TIMEOUT_SECONDS
from bcconnector.infrastructure.resilience.api_retry import (
    DEFAULT_RETRY_AFTER_SECONDS,
    DEFAULT_SAFETY_MARGIN_SECONDS,
    RetryPolicy,
)

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".bcconnector"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "BC_"
DEFAULT_API_URL = "https://api.bigcommerce.com"

# --- Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}  # For testing purposes
_loaded = False

def load_configuration(
    config_file: Path = DEFAULT_CONFIG_FILE,
    env_file: Optional[Path] = None,
    reload: bool = False,
) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        reload: Load again even if configuration was already loaded.

    Raises:
        ConfigurationError: If the YAML file exists but cannot be parsed.
    """
    global _config, _loaded
    if _loaded and not reload:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load or parse YAML config {config_file}: {e}") from e
        if isinstance(yaml_config, dict):
            _config.update(yaml_config)
            logger.info(f"Loaded configuration from YAML: {config_file}")
        elif yaml_config is not None:
            logger.warning(f"YAML config file {config_file} did not contain a mapping.")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: real environment variables take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above the current directory.")

    # 3. Environment Variables (Highest priority) are handled in get_config

    _loaded = True
    logger.debug("Configuration loading process completed.")

def env_var_name(key: str) -> str:
    """Environment variable backing a dotted config key, e.g. 'retry.max_retries' -> 'BC_RETRY_MAX_RETRIES'."""
    return ENV_PREFIX + key.upper().replace('.', '_')

def _coerce(value: str) -> Any:
    """Converts common string forms from the environment to bool/int/float."""
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value

def _lookup(data: Dict[str, Any], key: str) -> Any:
    """Finds a dotted key either verbatim or by walking nested mappings."""
    if key in data:
        return data[key]
    node: Any = data
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            raise KeyError(key)
        node = node[part]
    return node

def get_config(key: str, default: Any = None, coerce: bool = True) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (BC_ prefix, dots become underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key, e.g. 'store_hash' or 'retry.max_retries'
        default: Default value if the key is not found
        coerce: Convert environment strings to bool/int/float

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        value = os.environ[env_key]
        return _coerce(value) if coerce else value

    try:
        return _lookup(_config, key)
    except KeyError:
        logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
        return default

def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None

# --- Convenience Functions ---

def _get_str(key: str, default: Optional[str] = None) -> Optional[str]:
    # identifiers and tokens stay verbatim (e.g. leading zeros)
    value = get_config(key, default, coerce=False)
    return str(value) if value is not None else None

def _get_optional_int(key: str) -> Optional[int]:
    value = get_config(key)
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Config key '{key}' must be an integer, got {value!r}") from e

def _get_float(key: str, default: float) -> float:
    value = get_config(key, default)
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Config key '{key}' must be a number, got {value!r}") from e

def get_connection_config(max_concurrent_requests: Optional[int] = None) -> ConnectionConfig:
    """Builds the ConnectionConfig from loaded settings.

    Args:
        max_concurrent_requests: Overrides the 'max_concurrent_requests' setting.

    Raises:
        ConfigurationError: If a required setting is missing or invalid.
    """
    if max_concurrent_requests is None:
        max_concurrent_requests = _get_optional_int('max_concurrent_requests')
    return ConnectionConfig(
        store_hash=_get_str('store_hash'),
        access_token=_get_str('access_token'),
        client_id=_get_str('client_id'),
        api_base_url=_get_str('api_url', DEFAULT_API_URL),
        max_concurrent_requests=max_concurrent_requests,
    )

def get_retry_policy(max_retries: Optional[int] = None) -> RetryPolicy:
    """Builds the RetryPolicy from 'retry.*' settings.

    Args:
        max_retries: Overrides the 'retry.max_retries' setting.
    """
    if max_retries is None:
        max_retries = _get_optional_int('retry.max_retries')
    try:
        return RetryPolicy(
            safety_margin_seconds=_get_float('retry.safety_margin_seconds', DEFAULT_SAFETY_MARGIN_SECONDS),
            default_retry_after_seconds=_get_float('retry.default_retry_after_seconds', DEFAULT_RETRY_AFTER_SECONDS),
            max_retries=max_retries,
            jitter_seconds=_get_float('retry.jitter_seconds', 0.0),
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid retry settings: {e}") from e

def get_http_timeout() -> float:
    return _get_float('http.timeout_seconds', DEFAULT_TIMEOUT_SECONDS)

def describe_settings() -> Dict[str, Any]:
    """Effective settings for display, with the access token masked."""
    token = _get_str('access_token')
    masked = None
    if token:
        masked = ('*' * max(len(token) - 4, 4)) + token[-4:] if len(token) > 4 else '****'
    return {
        'store_hash': _get_str('store_hash'),
        'client_id': _get_str('client_id'),
        'access_token': masked,
        'api_url': _get_str('api_url', DEFAULT_API_URL),
        'max_concurrent_requests': get_config('max_concurrent_requests'),
        'retry.max_retries': get_config('retry.max_retries'),
        'retry.safety_margin_seconds': get_config('retry.safety_margin_seconds', DEFAULT_SAFETY_MARGIN_SECONDS),
        'http.timeout_seconds': get_config('http.timeout_seconds', DEFAULT_TIMEOUT_SECONDS),
    }

def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration keys: {sorted(config_dict)}")

def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
