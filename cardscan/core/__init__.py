"""Core domain entities and constants."""

from .entities import (
    Size, Rect, DetectedBox, Expiry, DigitResult, ObjectResult, FatalResult,
    ScanResult, CardScanResult, BBox
)
from .exceptions import ApplicationError, ConfigError, FrameError, ScanError, ModelError, ValidationError
from .constants import APP_NAME, VERSION

__all__ = [
    "Size", "Rect", "DetectedBox", "Expiry", "DigitResult", "ObjectResult", "FatalResult",
    "ScanResult", "CardScanResult", "BBox",
    "ApplicationError", "ConfigError", "FrameError", "ScanError", "ModelError", "ValidationError",
    "APP_NAME", "VERSION"
]
