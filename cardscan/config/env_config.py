"""Environment variable configuration.

Reads a ``.env`` file (if present) and the process environment, and validates
the handful of settings that can be overridden without touching config.json:

- ``CARDSCAN_MODELS_DIR``: directory holding the TorchScript models
- ``CARDSCAN_DEVICE``: ``auto``, ``cpu`` or ``cuda``
- ``CARDSCAN_ERROR_CORRECTION_MS``: aggregation window in milliseconds
- ``CARDSCAN_LOG_LEVEL``: logging level name
- ``DEBUG_LOGGING``: forces DEBUG level when truthy
"""
import os
import logging
from typing import Optional, Dict, Union
from pathlib import Path
from dataclasses import dataclass

logger = logging.getLogger(__name__)

VALID_DEVICES = {"auto", "cpu", "cuda"}
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class EnvironmentConfig:
    """Immutable environment configuration object."""

    models_dir: Optional[str]
    device: Optional[str]
    error_correction_duration_ms: Optional[int]
    log_level: Optional[str]
    debug_logging: bool


class EnvironmentError(Exception):
    """Custom exception for environment configuration errors."""
    pass


class EnvironmentValidator:
    """Validates environment variable values."""

    @classmethod
    def sanitize_path(cls, path: str) -> str:
        """Normalize a directory path.

        Raises:
            EnvironmentError: If path is empty or contains shell metacharacters
        """
        if not path or not path.strip():
            raise EnvironmentError("Path cannot be empty")

        dangerous_patterns = ['$', '`', ';', '|', '&', '<', '>', '"', "'"]
        for pattern in dangerous_patterns:
            if pattern in path:
                raise EnvironmentError(f"Path contains dangerous pattern: {pattern}")

        return os.path.normpath(path.strip())

    @classmethod
    def validate_numeric_range(cls, value: Union[str, int, float],
                               min_val: Optional[Union[int, float]] = None,
                               max_val: Optional[Union[int, float]] = None,
                               value_type: type = int) -> Union[int, float]:
        """Validate numeric value within specified range.

        Raises:
            EnvironmentError: If validation fails
        """
        try:
            numeric_value = value_type(value)
        except (ValueError, TypeError):
            raise EnvironmentError(f"Invalid {value_type.__name__} value: {value}")

        if min_val is not None and numeric_value < min_val:
            raise EnvironmentError(f"Value {numeric_value} below minimum {min_val}")

        if max_val is not None and numeric_value > max_val:
            raise EnvironmentError(f"Value {numeric_value} above maximum {max_val}")

        return numeric_value


def load_env_file(env_path: Optional[str] = None) -> Dict[str, str]:
    """Load KEY=VALUE pairs from a .env file (default ``.env`` in the cwd)."""
    if env_path is None:
        env_path = ".env"

    env_vars: Dict[str, str] = {}
    env_file_path = Path(env_path)

    if not env_file_path.exists():
        logger.debug(f"Environment file {env_path} not found, using system environment only")
        return env_vars

    try:
        with open(env_file_path, 'r', encoding='utf-8') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()

                # Skip comments and empty lines
                if not line or line.startswith('#'):
                    continue

                if '=' in line:
                    key, value = line.split('=', 1)
                    key = key.strip()
                    value = value.strip()

                    if value.startswith('"') and value.endswith('"'):
                        value = value[1:-1]
                    elif value.startswith("'") and value.endswith("'"):
                        value = value[1:-1]

                    env_vars[key] = value
                else:
                    logger.warning(f"Invalid line format in {env_path}:{line_num}: {line}")

        logger.info(f"Loaded {len(env_vars)} variables from {env_path}")

    except OSError as e:
        logger.error(f"Error reading environment file {env_path}: {e}")

    return env_vars


def get_env_var(key: str, default: Optional[str] = None,
                required: bool = False, env_vars: Optional[Dict[str, str]] = None) -> Optional[str]:
    """Get an environment variable, preferring values from the .env file.

    Raises:
        EnvironmentError: If required variable is missing
    """
    if env_vars and key in env_vars:
        value = env_vars[key]
    else:
        value = os.getenv(key, default)

    if required and (value is None or value.strip() == ""):
        raise EnvironmentError(f"Required environment variable '{key}' is not set")

    return value


def load_environment_config(env_file_path: Optional[str] = None) -> EnvironmentConfig:
    """Load and validate environment configuration.

    Raises:
        EnvironmentError: If a variable is set to an invalid value
    """
    env_vars = load_env_file(env_file_path)
    validator = EnvironmentValidator()

    try:
        models_dir = get_env_var("CARDSCAN_MODELS_DIR", env_vars=env_vars)
        if models_dir:
            models_dir = validator.sanitize_path(models_dir)

        device = get_env_var("CARDSCAN_DEVICE", env_vars=env_vars)
        if device:
            device = device.strip().lower()
            if device not in VALID_DEVICES:
                logger.warning(f"Invalid device '{device}', ignoring")
                device = None

        window_str = get_env_var("CARDSCAN_ERROR_CORRECTION_MS", env_vars=env_vars)
        window_ms = None
        if window_str:
            window_ms = validator.validate_numeric_range(window_str, 0, 60000, int)

        log_level = get_env_var("CARDSCAN_LOG_LEVEL", env_vars=env_vars)
        if log_level:
            log_level = log_level.strip().upper()
            if log_level not in VALID_LOG_LEVELS:
                logger.warning(f"Invalid log level '{log_level}', ignoring")
                log_level = None

        debug_str = get_env_var("DEBUG_LOGGING", "false", env_vars=env_vars)
        debug_logging = debug_str.lower() in ('true', '1', 'yes', 'on')

        return EnvironmentConfig(
            models_dir=models_dir,
            device=device,
            error_correction_duration_ms=window_ms,
            log_level=log_level,
            debug_logging=debug_logging,
        )

    except EnvironmentError as e:
        logger.error(f"Failed to load environment configuration: {e}")
        raise


__all__ = [
    "EnvironmentConfig",
    "EnvironmentError",
    "EnvironmentValidator",
    "load_environment_config",
    "load_env_file",
    "get_env_var"
]
