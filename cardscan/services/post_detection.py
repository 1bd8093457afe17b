"""Turns flagged grid cells into candidate 4-box card number lines."""

import logging
from typing import Callable, List

import numpy as np

from ..core import constants as C
from ..core.entities import DetectedBox

logger = logging.getLogger(__name__)

Line = List[DetectedBox]


class PostDetectionAlgorithm:
    """Candidate search over the most confident digit boxes of one frame.

    The boxes are reduced to the top 20, merged by proximity, then searched
    for chains of four roughly evenly spaced boxes, horizontally (the usual
    embossed layout) or vertically (portrait cards).
    """

    def __init__(self, boxes: List[DetectedBox], num_rows: int = C.GRID_ROWS, num_cols: int = C.GRID_COLS):
        self.num_rows = num_rows
        self.num_cols = num_cols
        self.sorted_boxes = sorted(boxes, reverse=True)[:C.MAX_BOXES_TO_DETECT]

    def horizontal_numbers(self) -> List[Line]:
        boxes = self.combine_close_boxes(C.DELTA_ROW_FOR_COMBINE, C.DELTA_COL_FOR_COMBINE)
        lines = self._find_numbers(boxes, key=lambda b: b.col, predicate=self._horizontal_predicate)
        accepted = [line for line in lines if self._evenly_spaced([b.col for b in line])]
        logger.debug(f"Horizontal search: {len(lines)} chains, {len(accepted)} evenly spaced")
        return accepted

    def vertical_numbers(self) -> List[Line]:
        boxes = self.combine_close_boxes(C.DELTA_ROW_FOR_COMBINE, C.DELTA_COL_FOR_COMBINE)
        lines = self._find_numbers(boxes, key=lambda b: b.row, predicate=self._vertical_predicate)
        accepted = [line for line in lines if self._evenly_spaced([b.row for b in line])]
        logger.debug(f"Vertical search: {len(lines)} chains, {len(accepted)} evenly spaced")
        return accepted

    def combine_close_boxes(self, delta_row: int, delta_col: int) -> List[DetectedBox]:
        """Greedy suppression: each kept box clears its neighbourhood of weaker boxes."""
        card_grid = np.zeros((self.num_rows, self.num_cols), dtype=bool)
        for box in self.sorted_boxes:
            card_grid[box.row, box.col] = True

        for box in self.sorted_boxes:
            if not card_grid[box.row, box.col]:
                continue
            row_lo = max(0, box.row - delta_row)
            col_lo = max(0, box.col - delta_col)
            card_grid[row_lo:box.row + delta_row + 1, col_lo:box.col + delta_col + 1] = False
            card_grid[box.row, box.col] = True

        return [box for box in self.sorted_boxes if card_grid[box.row, box.col]]

    @staticmethod
    def _horizontal_predicate(current: DetectedBox, nxt: DetectedBox) -> bool:
        delta = C.DELTA_ROW_FOR_HORIZONTAL
        return nxt.col > current.col and current.row - delta <= nxt.row <= current.row + delta

    @staticmethod
    def _vertical_predicate(current: DetectedBox, nxt: DetectedBox) -> bool:
        delta = C.DELTA_COL_FOR_VERTICAL
        return nxt.row > current.row and current.col - delta <= nxt.col <= current.col + delta

    def _find_numbers(self, boxes: List[DetectedBox], key: Callable[[DetectedBox], int],
                      predicate: Callable[[DetectedBox, DetectedBox], bool]) -> List[Line]:
        words = sorted(boxes, key=key)
        lines: List[Line] = []
        for idx, word in enumerate(words):
            self._extend([word], words[idx + 1:], predicate, lines)
        return lines

    def _extend(self, current_line: Line, words: List[DetectedBox],
                predicate: Callable[[DetectedBox, DetectedBox], bool], lines: List[Line]) -> None:
        if len(current_line) == C.NUMBER_WORD_COUNT:
            lines.append(current_line)
            return

        current = current_line[-1]
        for idx, word in enumerate(words):
            if predicate(current, word):
                self._extend(current_line + [word], words[idx + 1:], predicate, lines)

    @staticmethod
    def _evenly_spaced(positions: List[int]) -> bool:
        deltas = [b - a for a, b in zip(positions, positions[1:])]
        return max(deltas) - min(deltas) <= C.MAX_SPACING_SPREAD
