"""Utility functions package."""

from .geometry import box_rect, clamp_rect, calculate_roi, roi_center_y_ratio, round_half_up
from .image_utils import (
    yuv_to_rgb, yuv_to_rgb_software, crop_image, rotate_image, to_input_tensor,
    blank_frame, draw_boxes_on_image
)
from .card_utils import luhn_check, format_card_number, bank_slug

__all__ = [
    "box_rect", "clamp_rect", "calculate_roi", "roi_center_y_ratio", "round_half_up",
    "yuv_to_rgb", "yuv_to_rgb_software", "crop_image", "rotate_image", "to_input_tensor",
    "blank_frame", "draw_boxes_on_image",
    "luhn_check", "format_card_number", "bank_slug"
]
