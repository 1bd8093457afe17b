"""Expiry date recognition."""

import logging
from typing import List, Optional

import numpy as np

from ..core import constants as C
from ..core.entities import DetectedBox, Expiry
from .digit_classifier import RecognizedDigits, RecognizedDigitsModel

logger = logging.getLogger(__name__)


def parse_expiry_string(string: str) -> Optional[Expiry]:
    """Parse six recognized digits into an Expiry.

    The month is read from index 4 on and the year from the first three
    digits; two-digit years above 90 belong to the 1300s, the rest to the
    1400s.
    """
    if len(string) != C.EXPIRY_DIGIT_COUNT:
        return None

    try:
        month = int(string[4:])
        year = int(string[0:3])
    except ValueError:
        logger.debug("Expiry digits are not numeric")
        return None

    if month <= 0 or month > 12:
        return None

    century = C.EXPIRY_CENTURY_ABOVE if year > C.EXPIRY_CENTURY_THRESHOLD else C.EXPIRY_CENTURY_BELOW
    return Expiry(month=month, year=century + year, string=string)


def best_expiry_box(boxes: List[DetectedBox]) -> Optional[DetectedBox]:
    """The most confident expiry box (last after an ascending sort)."""
    if not boxes:
        return None
    return sorted(boxes)[-1]


def expiry_from_box(model: RecognizedDigitsModel, image: np.ndarray, box: DetectedBox) -> Optional[Expiry]:
    digits = RecognizedDigits.from_box(model, image, box.rect)
    return parse_expiry_string(digits.string_result())
