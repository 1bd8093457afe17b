"""Crops the card region out of a camera frame and turns it upright."""

import logging
from typing import Tuple

import numpy as np

from ..core.constants import CARD_HEIGHT, CARD_WIDTH, SUPPORTED_ORIENTATIONS
from ..core.exceptions import FrameError
from ..utils.geometry import round_half_up
from ..utils.image_utils import crop_image, rotate_image

logger = logging.getLogger(__name__)

CARD_ASPECT = CARD_HEIGHT / CARD_WIDTH


def compute_crop_rect(width: int, height: int, sensor_orientation: int,
                      roi_center_y_ratio: float, is_ocr: bool = True) -> Tuple[int, int, int, int]:
    """Region (x, y, w, h) of the sensor frame that holds the card.

    The card's long edge spans the sensor axis that ends up horizontal after
    rotation. ``roi_center_y_ratio`` places the crop along the other axis,
    mirrored for 180/270 degree sensors. The crop keeps its size when
    clamped, and only shrinks when it is larger than the frame.
    """
    orientation = sensor_orientation % 360
    aspect = CARD_ASPECT if is_ocr else 1.0

    if orientation == 0 or orientation == 180:
        w = float(width)
        h = w * aspect
        ratio = roi_center_y_ratio if orientation == 0 else 1.0 - roi_center_y_ratio
        x = 0
        y = round_half_up(height * ratio - h * 0.5)
    else:
        h = float(height)
        w = h * aspect
        ratio = roi_center_y_ratio if orientation == 90 else 1.0 - roi_center_y_ratio
        x = round_half_up(width * ratio - w * 0.5)
        y = 0

    crop_w = min(int(w), width)
    crop_h = min(int(h), height)

    if x < 0:
        x = 0
    if y < 0:
        y = 0
    if x + crop_w > width:
        x = width - crop_w
    if y + crop_h > height:
        y = height - crop_h

    return x, y, crop_w, crop_h


def crop_frame(image: np.ndarray, sensor_orientation: int, roi_center_y_ratio: float,
               is_ocr: bool = True) -> np.ndarray:
    """Crop the card region and rotate it upright."""
    orientation = sensor_orientation % 360
    if orientation not in SUPPORTED_ORIENTATIONS:
        raise FrameError(f"Unsupported sensor orientation: {sensor_orientation}")
    if image.ndim != 3 or image.shape[2] != 3:
        raise FrameError(f"Expected an RGB frame, got shape {image.shape}")

    img_h, img_w = image.shape[:2]
    x, y, w, h = compute_crop_rect(img_w, img_h, orientation, roi_center_y_ratio, is_ocr)
    if w <= 0 or h <= 0:
        raise FrameError(f"Empty crop for {img_w}x{img_h} frame")

    cropped = crop_image(image, x, y, w, h)
    return rotate_image(cropped, orientation)
