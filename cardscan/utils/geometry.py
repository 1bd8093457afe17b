"""Geometry helpers: grid cells to pixel boxes, preview ROI math."""

import math
from typing import Tuple

from ..core.entities import BBox, Rect, Size


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values, like a camera SDK would."""
    return int(math.floor(value + 0.5))


def box_rect(row: int, col: int, num_rows: int, num_cols: int,
             box_size: Size, card_size: Size, image_size: Size) -> Rect:
    """Pixel rectangle covered by grid cell (row, col).

    The nominal box is scaled by image/card size and the grid origins are
    spread evenly so the last row/column touches the far image edge.
    """
    w = box_size.width * image_size.width / card_size.width
    h = box_size.height * image_size.height / card_size.height
    x = (image_size.width - w) / (num_cols - 1) * col
    y = (image_size.height - h) / (num_rows - 1) * row
    return Rect(x, y, w, h)


def clamp_rect(rect: Rect, image_width: int, image_height: int) -> Tuple[int, int, int, int]:
    """Round a rectangle to pixels and keep it inside the image.

    Returns (x, y, w, h) with w, h >= 1 whenever the image is non-empty.
    """
    x = round_half_up(rect.x)
    y = round_half_up(rect.y)
    w = round_half_up(rect.width)
    h = round_half_up(rect.height)

    w = max(1, min(w, image_width))
    h = max(1, min(h, image_height))
    x = max(0, min(x, image_width - w))
    y = max(0, min(y, image_height - h))
    return x, y, w, h


def calculate_roi(preview_width: int, preview_height: int,
                  buffer_width: int, buffer_height: int,
                  roi_width_percent: float, roi_height_percent: float) -> BBox:
    """Map a centred preview ROI back into camera buffer pixels.

    The preview is assumed to show the buffer with FILL_CENTER scaling
    (scale to cover, then crop the overflow equally on both sides).
    """
    scale = max(preview_width / buffer_width, preview_height / buffer_height)

    dx = (buffer_width * scale - preview_width) / 2.0
    dy = (buffer_height * scale - preview_height) / 2.0

    roi_w = preview_width * roi_width_percent
    roi_h = preview_height * roi_height_percent
    roi_left = (preview_width - roi_w) / 2.0
    roi_top = (preview_height - roi_h) / 2.0

    left = int((roi_left + dx) / scale)
    top = int((roi_top + dy) / scale)
    right = int((roi_left + roi_w + dx) / scale)
    bottom = int((roi_top + roi_h + dy) / scale)
    return (left, top, right, bottom)


def roi_center_y_ratio(view_top: float, view_height: float, overlay_height: float) -> float:
    """Vertical centre of the card-frame overlay, normalized to the preview height."""
    if overlay_height <= 0:
        return 0.5
    ratio = (view_top + view_height * 0.5) / overlay_height
    return min(1.0, max(0.0, ratio))
