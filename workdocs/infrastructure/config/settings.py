"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.workdocs/config.yaml). Builds the typed
WorkdayEnvironment and AppConfig records consumed by the rest of the
application.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from workdocs.domain.errors import ConfigurationError
from workdocs.domain.models.common import ENVIRONMENT_NAMES

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".workdocs"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}  # For testing purposes
_loaded = False


@dataclass(frozen=True)
class WorkdayEnvironment:
    """Connection settings for one Workday tenant environment."""
    name: str
    token_url: str
    api_url: str
    client_id: str
    client_secret: str = field(repr=False)
    refresh_token: str = field(repr=False)


@dataclass(frozen=True)
class AppConfig:
    """Application settings that do not depend on the environment."""
    max_concurrent_uploads: int = 5
    max_file_size_mb: int = 25
    input_dir: str = "input"
    processed_dir: str = "processed"
    failed_dir: str = "failed"
    log_level: str = "info"
    log_dir: str = "logs"
    request_timeout_seconds: float = 30.0
    token_ttl_seconds: float = 55 * 60
    worker_cache_ttl_seconds: float = 60 * 60
    worker_cache_max_entries: int = 10_000
    failure_prompt_threshold: int = 10
    circuit_failure_threshold: int = 5
    circuit_recovery_timeout_seconds: float = 60.0


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values

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
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
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
        # override=False: real environment variables take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug(".env file not found at or above current directory.")

    # 3. Environment Variables (Highest priority) are handled in get_config
    _loaded = True
    logger.debug("Configuration loading process completed.")


def _lookup_yaml(key: str) -> Any:
    """Looks a key up in the YAML config, flat first, then as a dotted path."""
    if key in _config:
        return _config[key]
    node: Any = _config
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def _coerce(value: str) -> Any:
    """Converts common scalar strings from the environment."""
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        return float(value) if '.' in value else int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (key upper-cased, dots become underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key (e.g. 'max_concurrent_uploads')
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace('.', '_')
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    value = _lookup_yaml(key)
    if value is not None:
        return value

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def _get_required(name: str) -> str:
    """Reads a required string setting without scalar coercion."""
    value = _test_config.get(name) or os.environ.get(name) or _lookup_yaml(name.lower())
    if not value:
        raise ConfigurationError(f"Required environment variable {name} is not set")
    return str(value)


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Typed Accessors ---

def get_environment(name: str) -> WorkdayEnvironment:
    """Builds the connection settings for a Workday environment.

    Args:
        name: One of 'sandbox', 'sandbox_preview' or 'production'.

    Raises:
        ConfigurationError: If the name is unknown or a variable is missing.
    """
    if name not in ENVIRONMENT_NAMES:
        raise ConfigurationError(f"Unknown environment '{name}'. Expected one of: {', '.join(ENVIRONMENT_NAMES)}")

    prefix = name.upper()
    return WorkdayEnvironment(
        name=name,
        token_url=_get_required(f"{prefix}_TOKEN_URL"),
        api_url=_get_required(f"{prefix}_API_URL"),
        client_id=_get_required(f"{prefix}_CLIENT_ID"),
        client_secret=_get_required(f"{prefix}_CLIENT_SECRET"),
        refresh_token=_get_required(f"{prefix}_REFRESH_TOKEN"),
    )


def get_app_config() -> AppConfig:
    """Builds the application settings, falling back to AppConfig defaults."""
    defaults = AppConfig()
    try:
        return AppConfig(
            max_concurrent_uploads=int(get_config('max_concurrent_uploads', defaults.max_concurrent_uploads)),
            max_file_size_mb=int(get_config('max_file_size_mb', defaults.max_file_size_mb)),
            input_dir=str(get_config('input_dir', defaults.input_dir)),
            processed_dir=str(get_config('processed_dir', defaults.processed_dir)),
            failed_dir=str(get_config('failed_dir', defaults.failed_dir)),
            log_level=str(get_config('log_level', defaults.log_level)),
            log_dir=str(get_config('log_dir', defaults.log_dir)),
            request_timeout_seconds=float(get_config('request_timeout_seconds', defaults.request_timeout_seconds)),
            token_ttl_seconds=float(get_config('token_ttl_seconds', defaults.token_ttl_seconds)),
            worker_cache_ttl_seconds=float(get_config('worker_cache_ttl_seconds', defaults.worker_cache_ttl_seconds)),
            worker_cache_max_entries=int(get_config('worker_cache_max_entries', defaults.worker_cache_max_entries)),
            failure_prompt_threshold=int(get_config('failure_prompt_threshold', defaults.failure_prompt_threshold)),
            circuit_failure_threshold=int(get_config('circuit_failure_threshold', defaults.circuit_failure_threshold)),
            circuit_recovery_timeout_seconds=float(
                get_config('circuit_recovery_timeout_seconds', defaults.circuit_recovery_timeout_seconds)
            ),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid application setting: {e}") from e


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {sorted(config_dict)}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")


# Load configuration when the module is imported
load_configuration()
