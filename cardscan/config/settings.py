"""Configuration dataclass and loading utilities.

Provides a strongly-typed configuration object that is injected into the
scanner instead of relying on a global module-level dictionary.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional
import json, os, logging
from .defaults import DEFAULT_CONFIG
from .env_config import load_environment_config, EnvironmentConfig, EnvironmentError
from ..core.constants import SUPPORTED_ORIENTATIONS
from ..core.exceptions import ConfigError

logger = logging.getLogger(__name__)

_INTERNAL_FIELDS = ('extra',)


@dataclass(slots=True)
class Config:
    # Models
    models_dir: str = DEFAULT_CONFIG["models_dir"]
    grid_model_name: str = DEFAULT_CONFIG["grid_model_name"]
    digit_model_name: str = DEFAULT_CONFIG["digit_model_name"]
    device: str = DEFAULT_CONFIG["device"]

    # Scanning
    error_correction_duration_ms: int = DEFAULT_CONFIG["error_correction_duration_ms"]
    roi_center_y_ratio: float = DEFAULT_CONFIG["roi_center_y_ratio"]
    sensor_orientation: int = DEFAULT_CONFIG["sensor_orientation"]
    show_number_and_expiry_as_scanning: bool = DEFAULT_CONFIG["show_number_and_expiry_as_scanning"]
    draw_debug_boxes: bool = DEFAULT_CONFIG["draw_debug_boxes"]
    use_accelerated_yuv: bool = DEFAULT_CONFIG["use_accelerated_yuv"]

    # Debug and logging
    debug: bool = DEFAULT_CONFIG["debug"]
    log_level: str = DEFAULT_CONFIG["log_level"]
    log_dir: str = DEFAULT_CONFIG["log_dir"]
    enable_file_logging: bool = DEFAULT_CONFIG["enable_file_logging"]
    structured_logging: bool = DEFAULT_CONFIG["structured_logging"]

    # Arbitrary extra values retained for forward compatibility
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        # merge extra keys at top-level for saving
        extra = d.pop("extra", {})
        d.update(extra)
        return d

    def get(self, key: str, default: Any = None) -> Any:
        return getattr(self, key, self.extra.get(key, default))

    def validate(self) -> None:
        """Raise ConfigError if the scanner cannot run with these values."""
        if self.sensor_orientation not in SUPPORTED_ORIENTATIONS:
            raise ConfigError(f"Unsupported sensor orientation: {self.sensor_orientation}")
        if not 0.0 <= self.roi_center_y_ratio <= 1.0:
            raise ConfigError(f"roi_center_y_ratio must be within [0, 1], got {self.roi_center_y_ratio}")
        if self.error_correction_duration_ms < 0:
            raise ConfigError("error_correction_duration_ms cannot be negative")
        if not self.grid_model_name or not self.digit_model_name:
            raise ConfigError("Model names cannot be empty")


def load_config(path: str = "config.json", env_file: Optional[str] = None) -> Config:
    """Load configuration from a JSON file with environment overrides.

    Args:
        path: Path to config.json file
        env_file: Path to .env file (optional)

    Returns:
        Config: Loaded configuration. Malformed input falls back to defaults.
    """
    data: Dict[str, Any] = {}
    env_config: Optional[EnvironmentConfig] = None

    # Environment has the highest priority
    try:
        env_config = load_environment_config(env_file)
    except EnvironmentError as e:
        logger.warning(f"Environment configuration failed: {e}")

    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded_data = json.load(f)
                if loaded_data is None:
                    logger.warning(f"Configuration file '{path}' is empty, using defaults")
                elif not isinstance(loaded_data, dict):
                    logger.error(f"Configuration file '{path}' does not contain a valid JSON object, using defaults")
                else:
                    data = loaded_data
                    logger.info(f"Successfully loaded configuration from '{path}'")
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON configuration file '{path}': {e}. Using defaults.")
        except PermissionError:
            logger.error(f"Permission denied reading configuration file '{path}'. Using defaults.")
        except OSError as e:
            logger.error(f"Unexpected error loading configuration file '{path}': {e}. Using defaults.")
    else:
        logger.info(f"Configuration file '{path}' does not exist. Using defaults.")

    try:
        merged = {**DEFAULT_CONFIG, **data}

        if env_config:
            merged = _apply_environment_overrides(merged, env_config)

        _validate_path_settings(merged)
        merged = _sanitize_config_values(merged)

        # capture unknown keys
        extra = {k: v for k, v in merged.items() if k not in Config.__annotations__}
        if extra:
            logger.info(f"Found extra configuration keys: {list(extra.keys())}")

        cfg = Config(**{k: merged[k] for k in Config.__annotations__ if k not in _INTERNAL_FIELDS}, extra=extra)
        cfg.validate()
        return cfg
    except (ConfigError, TypeError, ValueError) as e:
        logger.error(f"Failed to create configuration object: {e}. Falling back to pure defaults.")
        fallback_cfg = Config()
        if env_config:
            _apply_environment_to_config(fallback_cfg, env_config)
        return fallback_cfg


def save_config(cfg: Config, path: str = "config.json") -> None:
    """Save configuration to JSON, keeping a backup until the write succeeds."""
    backup_path = f"{path}.backup"
    try:
        if os.path.exists(path):
            try:
                with open(path, "r", encoding="utf-8") as src:
                    with open(backup_path, "w", encoding="utf-8") as dst:
                        dst.write(src.read())
                logger.debug(f"Created backup configuration at '{backup_path}'")
            except OSError as e:
                logger.warning(f"Failed to create configuration backup: {e}")

        with open(path, "w", encoding="utf-8") as f:
            json.dump(cfg.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info(f"Configuration saved successfully to '{path}'")

        if os.path.exists(backup_path):
            try:
                os.remove(backup_path)
            except OSError as e:
                logger.debug(f"Keeping configuration backup '{backup_path}': {e}")

    except PermissionError:
        logger.error(f"Permission denied writing configuration file '{path}'")
    except OSError as e:
        logger.error(f"OS error saving configuration file '{path}': {e}")


def _validate_path_settings(config_dict: Dict[str, Any]) -> None:
    """Validate path-related configuration settings."""
    path_keys = ['models_dir', 'log_dir']

    for key in path_keys:
        if key in config_dict:
            path_value = config_dict[key]
            if not isinstance(path_value, str):
                logger.warning(f"Path setting '{key}' is not a string: {type(path_value)}. Using default.")
                config_dict[key] = DEFAULT_CONFIG[key]
            elif not path_value.strip():
                logger.warning(f"Path setting '{key}' is empty. Using default.")
                config_dict[key] = DEFAULT_CONFIG[key]


def _apply_environment_overrides(config_dict: Dict[str, Any], env_config: EnvironmentConfig) -> Dict[str, Any]:
    """Apply environment variable overrides to a configuration dictionary."""
    if env_config.models_dir:
        config_dict["models_dir"] = env_config.models_dir
    if env_config.device:
        config_dict["device"] = env_config.device
    if env_config.error_correction_duration_ms is not None:
        config_dict["error_correction_duration_ms"] = env_config.error_correction_duration_ms
    if env_config.log_level:
        config_dict["log_level"] = env_config.log_level

    if env_config.debug_logging:
        config_dict["debug"] = True
        config_dict["log_level"] = "DEBUG"

    logger.debug("Applied environment variable overrides to configuration")
    return config_dict


def _apply_environment_to_config(cfg: Config, env_config: EnvironmentConfig) -> None:
    overrides = _apply_environment_overrides({}, env_config)
    for key, value in overrides.items():
        setattr(cfg, key, value)
    logger.info("Applied environment configuration to fallback config")


def _sanitize_config_values(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize paths and reset out-of-range numeric values to defaults."""
    sanitized = config_dict.copy()

    for key in ('models_dir', 'log_dir'):
        if isinstance(sanitized.get(key), str):
            sanitized[key] = os.path.normpath(sanitized[key].strip())

    numeric_validations = {
        'error_correction_duration_ms': (0, 60000),
        'roi_center_y_ratio': (0.0, 1.0),
    }

    for key, (min_val, max_val) in numeric_validations.items():
        if key in sanitized:
            value = sanitized[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                logger.warning(f"Value {key}={value!r} is not numeric, using default")
                sanitized[key] = DEFAULT_CONFIG[key]
            elif not (min_val <= value <= max_val):
                logger.warning(f"Value {key}={value} out of range [{min_val}, {max_val}], using default")
                sanitized[key] = DEFAULT_CONFIG[key]

    if sanitized.get('sensor_orientation') not in SUPPORTED_ORIENTATIONS:
        logger.warning(f"Unsupported sensor_orientation={sanitized.get('sensor_orientation')!r}, using default")
        sanitized['sensor_orientation'] = DEFAULT_CONFIG['sensor_orientation']

    return sanitized
