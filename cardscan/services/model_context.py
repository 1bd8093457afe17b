"""Owner of the two classifiers for the lifetime of the application."""

import logging
import os
import threading
from typing import Any, Dict, Optional

from ..backends.base_backend import BaseBackend
from ..backends.torch_backend import TorchScriptBackend
from .digit_classifier import RecognizedDigitsModel
from .grid_classifier import FindFourModel

logger = logging.getLogger(__name__)


class ModelContext:
    """Holds the FindFour and digit models and loads them once.

    Loading is lazy and idempotent. The models themselves are not thread
    safe; the scan worker is their only user.
    """

    def __init__(self, find_four: FindFourModel, recognized_digits: RecognizedDigitsModel):
        self.find_four = find_four
        self.recognized_digits = recognized_digits
        self._load_lock = threading.Lock()

    @classmethod
    def from_backends(cls, grid_backend: BaseBackend, digit_backend: BaseBackend,
                      models_dir: str = "", grid_model: Optional[str] = None,
                      digit_model: Optional[str] = None) -> "ModelContext":
        grid_path = os.path.join(models_dir, grid_model or FindFourModel.model_name)
        digit_path = os.path.join(models_dir, digit_model or RecognizedDigitsModel.model_name)
        return cls(FindFourModel(grid_backend, grid_path), RecognizedDigitsModel(digit_backend, digit_path))

    @classmethod
    def from_config(cls, config) -> "ModelContext":
        """Build TorchScript-backed models from a Config."""
        backend_config: Dict[str, Any] = {'device': config.device}
        return cls.from_backends(
            TorchScriptBackend(backend_config),
            TorchScriptBackend(backend_config),
            models_dir=config.models_dir,
            grid_model=config.grid_model_name,
            digit_model=config.digit_model_name,
        )

    @property
    def is_initialized(self) -> bool:
        return self.find_four.backend.is_model_loaded() and self.recognized_digits.backend.is_model_loaded()

    def ensure_loaded(self) -> None:
        """Load both models if needed. Raises ModelError on failure."""
        if self.is_initialized:
            return
        with self._load_lock:
            if self.is_initialized:
                return
            self.find_four.load()
            self.recognized_digits.load()
            logger.info("Card models loaded")

    def close(self) -> None:
        with self._load_lock:
            self.find_four.backend.unload_model()
            self.recognized_digits.backend.unload_model()
