"""Tests for geometry helpers."""
import pytest

from cardscan.core.entities import Rect, Size
from cardscan.utils.geometry import (
    box_rect, calculate_roi, clamp_rect, roi_center_y_ratio, round_half_up
)


class TestRoundHalfUp:

    @pytest.mark.parametrize("value,expected", [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (0.0, 0)])
    def test_rounds_half_away_from_zero(self, value, expected):
        assert round_half_up(value) == expected


class TestBoxRect:

    def test_grid_origins_are_evenly_spread(self):
        card = Size(480, 302)
        rect = box_rect(10, 25, 34, 51, Size(80, 36), card, card)

        assert rect.x == pytest.approx(8.0 * 25)
        assert rect.y == pytest.approx(266.0 / 33 * 10)
        assert (rect.width, rect.height) == (80, 36)


class TestClampRect:

    def test_inside_image_is_rounded_only(self):
        assert clamp_rect(Rect(10.4, 20.5, 80.0, 36.0), 480, 302) == (10, 21, 80, 36)

    def test_overflow_is_shifted_back_inside(self):
        assert clamp_rect(Rect(450.0, 290.0, 80.0, 36.0), 480, 302) == (400, 266, 80, 36)

    def test_larger_than_image_shrinks(self):
        assert clamp_rect(Rect(-5.0, -5.0, 100.0, 100.0), 50, 40) == (0, 0, 50, 40)


class TestCalculateRoi:

    def test_same_size_preview(self):
        left, top, right, bottom = calculate_roi(1000, 500, 1000, 500, 0.8, 0.5)

        assert (left, top, right, bottom) == (100, 125, 900, 375)

    def test_fill_center_crops_overflow(self):
        # 2000x1000 buffer shown in a 500x500 preview: scale 0.5, 250 px cut on each side
        left, top, right, bottom = calculate_roi(500, 500, 2000, 1000, 1.0, 1.0)

        assert (left, top, right, bottom) == (500, 0, 1500, 1000)


class TestRoiCenterYRatio:

    def test_centered_overlay(self):
        assert roi_center_y_ratio(400, 200, 1000) == pytest.approx(0.5)

    def test_clamped_to_unit_interval(self):
        assert roi_center_y_ratio(1500, 200, 1000) == 1.0
        assert roi_center_y_ratio(-500, 100, 1000) == 0.0

    def test_zero_height_overlay(self):
        assert roi_center_y_ratio(10, 10, 0) == 0.5
