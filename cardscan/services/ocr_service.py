"""Per-frame card OCR: grid classification, line search, digits and expiry."""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from ..core.entities import DetectedBox, Expiry
from ..core.exceptions import ModelError
from .expiry_parser import best_expiry_box, expiry_from_box
from .model_context import ModelContext
from .number_assembler import RecognizeNumbers
from .post_detection import PostDetectionAlgorithm

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OcrPrediction:
    number: Optional[str] = None
    expiry: Optional[Expiry] = None
    digit_boxes: List[DetectedBox] = field(default_factory=list)
    expiry_box: Optional[DetectedBox] = None
    latency_ms: int = 0


class OCRService:
    """Runs the whole OCR decision pipeline on one upright, cropped frame."""

    def __init__(self, models: ModelContext):
        self.models = models

    def predict(self, image: np.ndarray) -> OcrPrediction:
        """Recognize number and expiry on a frame.

        A frame without a card gives an empty prediction. Any failure of the
        inference engine raises ModelError.
        """
        start_time = time.time()
        try:
            self.models.ensure_loaded()
            prediction = self._run_model(image)
        except ModelError:
            raise
        except Exception as e:
            raise ModelError(f"Unrecoverable exception in OCR: {e}") from e

        prediction.latency_ms = int((time.time() - start_time) * 1000)
        logger.debug(
            f"Frame processed in {prediction.latency_ms} ms: number={'yes' if prediction.number else 'no'}, "
            f"expiry={'yes' if prediction.expiry else 'no'}"
        )
        return prediction

    def _run_model(self, image: np.ndarray) -> OcrPrediction:
        find_four = self.models.find_four
        digits_model = self.models.recognized_digits
        img_h, img_w = image.shape[:2]

        find_four.classify_frame(image)
        boxes = find_four.digit_boxes(img_w, img_h)
        expiry_boxes = find_four.expiry_boxes(img_w, img_h)

        post_detection = PostDetectionAlgorithm(boxes, find_four.rows, find_four.cols)
        recognize_numbers = RecognizeNumbers(image)

        lines = post_detection.horizontal_numbers()
        number = recognize_numbers.number(digits_model, lines)

        if number is None:
            vertical_lines = post_detection.vertical_numbers()
            number = recognize_numbers.number(digits_model, vertical_lines)
            lines = lines + vertical_lines

        prediction = OcrPrediction(number=number)
        prediction.digit_boxes = [box for line in lines for box in line]

        expiry_box = best_expiry_box(expiry_boxes)
        if expiry_box is not None:
            prediction.expiry = expiry_from_box(digits_model, image, expiry_box)
            prediction.expiry_box = expiry_box if prediction.expiry is not None else None

        return prediction
