"""On-device payment card scanner: camera frames in, card number and expiry out."""

from .core.constants import VERSION
from .core.entities import CardScanResult, DigitResult, Expiry, FatalResult, ObjectResult
from .config.settings import Config, load_config
from .scanner import CardScanner

__version__ = VERSION

__all__ = [
    "CardScanner", "CardScanResult", "DigitResult", "Expiry", "FatalResult", "ObjectResult",
    "Config", "load_config", "__version__"
]
