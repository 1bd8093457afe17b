"""FindFour: coarse grid classifier locating digit groups and the expiry date."""

from typing import List, Optional

import numpy as np

from ..backends.base_backend import BaseBackend
from ..core import constants as C
from ..core.entities import DetectedBox, Size
from .image_classifier import ImageClassifier


class FindFourModel(ImageClassifier):
    """Scores every cell of a 34x51 grid laid over the card.

    Each cell gets three probabilities (background, digit group, expiry).
    """

    rows = C.GRID_ROWS
    cols = C.GRID_COLS
    image_size_x = C.CARD_WIDTH
    image_size_y = C.CARD_HEIGHT
    model_name = "findfour.pt"

    box_size = Size(C.BOX_WIDTH, C.BOX_HEIGHT)
    card_size = Size(C.CARD_WIDTH, C.CARD_HEIGHT)

    def __init__(self, backend: BaseBackend, model_path: Optional[str] = None):
        super().__init__(backend, model_path)
        self._label_probs = np.zeros((self.rows, self.cols, C.GRID_CLASSES), dtype=np.float32)

    @property
    def expected_output_size(self) -> int:
        return self.rows * self.cols * C.GRID_CLASSES

    def _store_output(self, output: np.ndarray) -> None:
        self._label_probs = output.reshape(self.rows, self.cols, C.GRID_CLASSES)

    def digit_confidence(self, row: int, col: int) -> float:
        return float(self._label_probs[row, col, C.GRID_DIGIT_CLASS])

    def expiry_confidence(self, row: int, col: int) -> float:
        return float(self._label_probs[row, col, C.GRID_EXPIRY_CLASS])

    def has_digits(self, row: int, col: int) -> bool:
        return self.digit_confidence(row, col) >= C.GRID_MIN_CONFIDENCE

    def has_expiry(self, row: int, col: int) -> bool:
        return self.expiry_confidence(row, col) >= C.GRID_MIN_CONFIDENCE

    def digit_boxes(self, image_width: int, image_height: int) -> List[DetectedBox]:
        """Boxes for every cell flagged as a digit group, row-major."""
        return self._boxes(C.GRID_DIGIT_CLASS, image_width, image_height)

    def expiry_boxes(self, image_width: int, image_height: int) -> List[DetectedBox]:
        """Boxes for every cell flagged as expiry, row-major."""
        return self._boxes(C.GRID_EXPIRY_CLASS, image_width, image_height)

    def _boxes(self, cls: int, image_width: int, image_height: int) -> List[DetectedBox]:
        image_size = Size(float(image_width), float(image_height))
        scores = self._label_probs[:, :, cls]
        boxes = []
        for row, col in zip(*np.nonzero(scores >= C.GRID_MIN_CONFIDENCE)):
            boxes.append(DetectedBox.from_grid(
                int(row), int(col), float(scores[row, col]),
                self.rows, self.cols, self.box_size, self.card_size, image_size
            ))
        return boxes
