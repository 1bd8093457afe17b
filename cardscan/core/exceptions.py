"""Custom exceptions for the card scanner."""

class ApplicationError(Exception):
    """Base application error."""
    pass

class ConfigError(ApplicationError):
    """Configuration-related errors."""
    pass

class FrameError(ApplicationError):
    """Raised when a camera buffer cannot be turned into an RGB frame."""
    pass

class ScanError(ApplicationError):
    """Scan session misuse (e.g. posting frames to a stopped worker)."""
    pass

class ModelError(Exception):
    """Model loading/inference errors. Always fatal for the scan session."""
    pass

class ValidationError(Exception):
    """Data validation errors."""
    pass
