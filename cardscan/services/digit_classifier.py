"""Fine digit recognizer run on one detected box at a time."""

from typing import List, Optional, Tuple

import numpy as np

from ..backends.base_backend import BaseBackend
from ..core import constants as C
from ..core.entities import Rect
from ..utils.geometry import clamp_rect
from ..utils.image_utils import crop_image
from .image_classifier import ImageClassifier


class RecognizedDigitsModel(ImageClassifier):
    """Reads an 80x36 crop as 17 positions, each scored over 10 digits + background."""

    image_size_x = C.DIGIT_IMAGE_WIDTH
    image_size_y = C.DIGIT_IMAGE_HEIGHT
    model_name = "fourrecognize.pt"

    def __init__(self, backend: BaseBackend, model_path: Optional[str] = None):
        super().__init__(backend, model_path)
        self._label_probs = np.zeros((C.NUM_PREDICTIONS, C.DIGIT_CLASSES), dtype=np.float32)

    @property
    def expected_output_size(self) -> int:
        return C.NUM_PREDICTIONS * C.DIGIT_CLASSES

    def _store_output(self, output: np.ndarray) -> None:
        self._label_probs = output.reshape(C.NUM_PREDICTIONS, C.DIGIT_CLASSES)

    def arg_and_value_max(self, position: int) -> Tuple[int, float]:
        """Most likely class at a position and its score (first index wins ties)."""
        scores = self._label_probs[position]
        idx = int(np.argmax(scores))
        return idx, float(scores[idx])


class RecognizedDigits:
    """Per-position digit predictions for one box."""

    def __init__(self, digits: List[int], confidence: List[float]):
        self.digits = list(digits)
        self.confidence = list(confidence)

    @classmethod
    def from_box(cls, model: RecognizedDigitsModel, image: np.ndarray, box: Rect) -> "RecognizedDigits":
        """Crop the box out of the frame and classify it."""
        img_h, img_w = image.shape[:2]
        x, y, w, h = clamp_rect(box, img_w, img_h)
        model.classify_frame(crop_image(image, x, y, w, h))

        digits = []
        confidence = []
        for position in range(C.NUM_PREDICTIONS):
            arg_max, score = model.arg_and_value_max(position)
            digits.append(arg_max if score >= C.DIGIT_MIN_CONFIDENCE else C.BACKGROUND_CLASS)
            confidence.append(score)

        return cls(digits, confidence)

    def non_max_suppression(self) -> List[int]:
        """Keep only the stronger of any two adjacent digit positions.

        The suppressed position is given confidence 1.0 so it cannot take
        part in a later comparison.
        """
        digits = list(self.digits)
        confidence = list(self.confidence)

        for idx in range(len(digits) - 1):
            if digits[idx] != C.BACKGROUND_CLASS and digits[idx + 1] != C.BACKGROUND_CLASS:
                if confidence[idx] < confidence[idx + 1]:
                    digits[idx] = C.BACKGROUND_CLASS
                    confidence[idx] = 1.0
                else:
                    digits[idx + 1] = C.BACKGROUND_CLASS
                    confidence[idx + 1] = 1.0

        return digits

    def string_result(self) -> str:
        return "".join(str(d) for d in self.non_max_suppression() if d != C.BACKGROUND_CLASS)

    def four(self) -> str:
        """Exactly four evenly spaced digits, or "" when that is not possible."""
        digits = self.non_max_suppression()
        result = "".join(str(d) for d in digits if d != C.BACKGROUND_CLASS)

        if len(result) < 4:
            return ""

        from_left = True
        left_idx = 0
        right_idx = len(digits) - 1
        while len(result) > 4:
            if from_left:
                if digits[left_idx] != C.BACKGROUND_CLASS:
                    result = result[1:]
                    digits[left_idx] = C.BACKGROUND_CLASS
                left_idx += 1
            else:
                if digits[right_idx] != C.BACKGROUND_CLASS:
                    result = result[:-1]
                    digits[right_idx] = C.BACKGROUND_CLASS
                right_idx -= 1
            from_left = not from_left

        positions = [idx for idx, d in enumerate(digits) if d != C.BACKGROUND_CLASS]
        deltas = [b - a for a, b in zip(positions, positions[1:])]
        if deltas and max(deltas) > min(deltas) + 1:
            return ""

        return result
