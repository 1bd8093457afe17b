"""Reads candidate lines and returns the first valid card number."""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..core.constants import CARD_NUMBER_LENGTH
from ..core.entities import DetectedBox
from ..utils.card_utils import luhn_check
from .digit_classifier import RecognizedDigits, RecognizedDigitsModel

logger = logging.getLogger(__name__)


class RecognizeNumbers:
    """Digit recognition for one frame, cached per grid cell.

    A box shared by several candidate lines is classified only once.
    """

    def __init__(self, image: np.ndarray):
        self.image = image
        self._cache: Dict[Tuple[int, int], RecognizedDigits] = {}

    def number(self, model: RecognizedDigitsModel, lines: List[List[DetectedBox]]) -> Optional[str]:
        """First line whose digits form a 16-digit Luhn-valid number."""
        for line in lines:
            candidate = "".join(self.cached_digits(model, box).string_result() for box in line)
            if len(candidate) == CARD_NUMBER_LENGTH and luhn_check(candidate):
                return candidate
            logger.debug(f"Rejected candidate of length {len(candidate)}")
        return None

    def cached_digits(self, model: RecognizedDigitsModel, box: DetectedBox) -> RecognizedDigits:
        key = (box.row, box.col)
        if key not in self._cache:
            self._cache[key] = RecognizedDigits.from_box(model, self.image, box.rect)
        return self._cache[key]

    @property
    def classified_count(self) -> int:
        return len(self._cache)
