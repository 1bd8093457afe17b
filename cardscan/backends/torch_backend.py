"""TorchScript backend for the card classifiers."""
import os
from typing import List, Dict, Any
import numpy as np
from .base_backend import BaseBackend
from ..core.exceptions import ModelError

# Try to import torch
HAS_TORCH = False
try:
    import torch
    HAS_TORCH = True
except ImportError:
    HAS_TORCH = False

class TorchScriptBackend(BaseBackend):
    """Runs a TorchScript module exported from the trained classifier.

    Inputs are fed as a (1, H, W, 3) float32 batch; the first output tensor
    is flattened and returned.
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.model = None
        self.model_path = None
        self.device = self._select_device(config.get('device', 'cpu'))

    @staticmethod
    def _select_device(requested: str) -> str:
        if requested in ('auto', 'cuda') and HAS_TORCH and torch.cuda.is_available():
            return 'cuda'
        return 'cpu'

    def load_model(self, model_path_or_name: str) -> bool:
        """Load a TorchScript module from disk."""
        if not HAS_TORCH:
            raise ModelError("PyTorch not installed. Cannot use TorchScript backend.")

        if not os.path.isfile(model_path_or_name):
            raise ModelError(f"Model file not found: {model_path_or_name}")

        try:
            self.model = torch.jit.load(model_path_or_name, map_location=self.device)
            self.model.eval()
            self.model_path = model_path_or_name
            self.is_loaded = True

            self.model_info = {
                'backend': 'torchscript',
                'model_path': model_path_or_name,
                'device': self.device,
            }
            return True

        except Exception as e:
            self.is_loaded = False
            raise ModelError(f"Failed to load TorchScript model {model_path_or_name}: {e}") from e

    def infer(self, input_tensor: np.ndarray, input_shape: tuple) -> np.ndarray:
        """Run the module on one frame and return the flat float32 output."""
        if not self.is_loaded or self.model is None:
            raise ModelError("No model loaded")

        try:
            batch = np.ascontiguousarray(input_tensor, dtype=np.float32).reshape((1,) + tuple(input_shape))
            with torch.no_grad():
                output = self.model(torch.from_numpy(batch).to(self.device))
            if isinstance(output, (list, tuple)):
                output = output[0]
            return output.detach().cpu().numpy().astype(np.float32).ravel()

        except Exception as e:
            raise ModelError(f"TorchScript inference failed: {e}") from e

    def get_model_info(self) -> Dict[str, Any]:
        if not self.is_loaded:
            return {'status': 'not_loaded'}
        return self.model_info.copy()

    def get_supported_formats(self) -> List[str]:
        return ['.pt', '.torchscript']

    def unload_model(self) -> None:
        if self.model is not None:
            del self.model
            self.model = None

        super().unload_model()
        self.model_path = None
