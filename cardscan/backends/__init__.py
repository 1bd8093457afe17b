"""Backend implementations for the inference engines."""

from .base_backend import BaseBackend
from .torch_backend import TorchScriptBackend

__all__ = ["BaseBackend", "TorchScriptBackend"]
