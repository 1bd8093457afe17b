"""Shared plumbing for the two card classifiers."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from ..backends.base_backend import BaseBackend
from ..core.exceptions import ModelError
from ..utils.image_utils import to_input_tensor

logger = logging.getLogger(__name__)


class ImageClassifier(ABC):
    """Resizes a frame, converts it to a float RGB tensor and runs the backend.

    Subclasses define the input size and how the flat output is laid out.
    The last output is kept on the instance, so a classifier must only be
    used from one thread at a time.
    """

    image_size_x: int = 0
    image_size_y: int = 0
    model_name: str = ""

    def __init__(self, backend: BaseBackend, model_path: Optional[str] = None):
        self.backend = backend
        self.model_path = model_path or self.model_name

    @property
    def input_shape(self) -> tuple:
        return (self.image_size_y, self.image_size_x, 3)

    @property
    @abstractmethod
    def expected_output_size(self) -> int:
        pass

    def load(self) -> None:
        """Load the model if the backend does not hold one yet."""
        if self.backend.is_model_loaded():
            return
        logger.info(f"Loading {type(self).__name__} model from {self.model_path}")
        self.backend.load_model(self.model_path)

    def classify_frame(self, image: np.ndarray) -> None:
        """Run the model on an RGB frame and keep its output."""
        if not self.backend.is_model_loaded():
            raise ModelError(f"{type(self).__name__} has not been loaded")

        tensor = to_input_tensor(image, self.image_size_x, self.image_size_y)
        output = np.asarray(self.backend.infer(tensor, self.input_shape), dtype=np.float32).ravel()

        if output.size != self.expected_output_size:
            raise ModelError(
                f"{type(self).__name__} produced {output.size} values, expected {self.expected_output_size}"
            )
        self._store_output(output)

    @abstractmethod
    def _store_output(self, output: np.ndarray) -> None:
        pass
