"""Base backend interface for inference engines."""
from abc import ABC, abstractmethod
from typing import List, Dict, Any
import numpy as np

class BaseBackend(ABC):
    """Abstract base class for numeric inference engines.

    A backend takes a flat float32 input tensor and returns a flat float32
    output tensor; the classifiers on top own the tensor layouts.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.is_loaded = False
        self.model_info = {}

    @abstractmethod
    def load_model(self, model_path_or_name: str) -> bool:
        """Load a model from path. Raises ModelError on failure."""
        pass

    @abstractmethod
    def infer(self, input_tensor: np.ndarray, input_shape: tuple) -> np.ndarray:
        """Run inference on a flat input tensor reshaped to ``input_shape``."""
        pass

    @abstractmethod
    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the loaded model."""
        pass

    def is_model_loaded(self) -> bool:
        """Check if a model is currently loaded."""
        return self.is_loaded

    def unload_model(self) -> None:
        """Unload the current model to free memory."""
        self.is_loaded = False
        self.model_info = {}

    @abstractmethod
    def get_supported_formats(self) -> List[str]:
        """Get list of supported model formats."""
        pass
