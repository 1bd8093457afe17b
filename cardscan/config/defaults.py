"""Default configuration values."""

from typing import Any, Dict

DEFAULT_CONFIG: Dict[str, Any] = {
    # Models
    "models_dir": "data/models",
    "grid_model_name": "findfour.pt",
    "digit_model_name": "fourrecognize.pt",
    "device": "auto",  # auto, cpu, cuda

    # Scanning
    "error_correction_duration_ms": 2000,
    "roi_center_y_ratio": 0.5,  # 0.0 to 1.0
    "sensor_orientation": 90,  # 0, 90, 180, 270
    "show_number_and_expiry_as_scanning": True,
    "draw_debug_boxes": False,
    "use_accelerated_yuv": True,

    # Debug and Logging Settings
    "debug": False,
    "log_level": "INFO",
    "log_dir": "logs",
    "enable_file_logging": False,
    "structured_logging": False,
}
