"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (e.g., ~/.clubadmin/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional, Dict

from dotenv import load_dotenv
import yaml

from clubadmin.domain.models.common import BackoffPolicy

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".clubadmin"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "CLUBADMIN_"

DEFAULTS: Dict[str, Any] = {
    "api.base_url": "http://localhost:8787",
    "api.timeout": 10.0,
    "retry.max_attempts": 3,
    "retry.base_delay": 1.0,
    "retry.max_delay": 30.0,
    "cache.backend": "disk",
    "cache.dir": str(DEFAULT_CONFIG_DIR / "cache"),
    "cache.ttl_ms": 5 * 60 * 1000, # 5 minutes
    "queue.max_replay_attempts": 3,
    "probe.interval": 5.0,
    "probe.poor_latency": 2.0,
    "support.address": "support@example.com",
    "logging.level": "WARNING",
    "logging.rich": False,
}

# --- Global Configuration Store (Simple Approach) ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}  # For testing purposes
_loaded = False

def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables (CLUBADMIN_API_BASE_URL for 'api.base_url')
    2. .env file
    3. YAML configuration file (nested mappings are flattened to dotted keys)
    4. Default values defined in DEFAULTS

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False): # override=False: ENV VARS take precedence
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug(".env file not found at or above current directory.")

    # 3. Environment Variables (Highest priority) are handled by get_config

    _loaded = True
    logger.debug("Configuration loading process completed.")

def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested mappings into dotted keys ({'api': {'timeout': 5}} -> {'api.timeout': 5})."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{full_key}."))
        else:
            flat[full_key] = value
    return flat

def env_var_name(key: str) -> str:
    """Environment variable consulted for a dotted configuration key."""
    return ENV_PREFIX + key.upper().replace('.', '_')

def _coerce(key: str, value: str) -> Any:
    """Converts an environment string for keys whose defaults are numbers or flags.

    Other keys (tokens, URLs, paths) are returned verbatim.
    """
    default = DEFAULTS.get(key)
    if not isinstance(default, (bool, int, float)):
        return value
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

def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable
    3. YAML config
    4. Built-in default, then the default argument

    Args:
        key: The configuration key (dotted, e.g. 'retry.max_attempts')
        default: Default value if the key is not found anywhere

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        return _coerce(key, os.environ[env_key])

    if key in _config:
        return _config[key]

    if default is None and key in DEFAULTS:
        return DEFAULTS[key]

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default

def set_config(key: str, value: Any) -> None:
    """Sets a configuration value for the running process.

    Args:
        key: Configuration key (e.g., 'logging.level')
        value: Value to set
    """
    logger.debug(f"Setting config: {key} = {value}")
    _config[key] = value

def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None

# --- Convenience Functions ---

def get_api_base_url() -> str:
    return str(get_config('api.base_url')).rstrip('/')

def get_api_token() -> Optional[str]:
    """Bearer token for the admin API (session storage is owned elsewhere)."""
    token = get_config('api.token')
    return str(token) if token is not None else None

def get_retry_settings() -> BackoffPolicy:
    """Gets the default retry configuration."""
    return BackoffPolicy(
        max_attempts=int(get_config('retry.max_attempts')),
        base_delay=float(get_config('retry.base_delay')),
        max_delay=float(get_config('retry.max_delay')),
    )

def get_cache_ttl_ms() -> int:
    return int(get_config('cache.ttl_ms'))

def get_cache_backend() -> str:
    backend = str(get_config('cache.backend')).lower()
    if backend not in ('disk', 'memory'):
        logger.warning(f"Unknown cache backend '{backend}'. Falling back to 'memory'.")
        return 'memory'
    return backend

def get_support_address() -> str:
    return str(get_config('support.address'))

def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")

def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")

# Load configuration when the module is imported
load_configuration()
