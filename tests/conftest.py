"""Pytest configuration and shared fixtures for the card scanner.

The inference engines are replaced by FakeBackend, which returns canned
numpy outputs, so the suite needs neither model files nor a torch runtime.
"""
import os
import sys
import tempfile
import threading
import pytest
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple
import numpy as np

# Add the project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from cardscan.backends.base_backend import BaseBackend
from cardscan.core import constants as C
from cardscan.core.entities import DetectedBox, Rect, Size
from cardscan.services.digit_classifier import RecognizedDigitsModel
from cardscan.services.grid_classifier import FindFourModel
from cardscan.services.model_context import ModelContext


# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)


VALID_CARD_NUMBER = "4532015112830366"


class FakeBackend(BaseBackend):
    """In-memory inference engine.

    ``output`` is returned for every call, or ``output_fn(tensor, shape)``
    decides per call. ``fail_on_load`` / ``fail_on_infer`` take an
    exception to raise.
    """

    def __init__(self, output: Optional[np.ndarray] = None,
                 output_fn: Optional[Callable[[np.ndarray, tuple], np.ndarray]] = None,
                 fail_on_load: Optional[Exception] = None,
                 fail_on_infer: Optional[Exception] = None):
        super().__init__({})
        self.output = output
        self.output_fn = output_fn
        self.fail_on_load = fail_on_load
        self.fail_on_infer = fail_on_infer
        self.loaded_paths: List[str] = []
        self.infer_calls = 0

    def load_model(self, model_path_or_name: str) -> bool:
        if self.fail_on_load is not None:
            raise self.fail_on_load
        self.loaded_paths.append(model_path_or_name)
        self.is_loaded = True
        self.model_info = {'backend': 'fake', 'model_path': model_path_or_name}
        return True

    def infer(self, input_tensor: np.ndarray, input_shape: tuple) -> np.ndarray:
        self.infer_calls += 1
        if self.fail_on_infer is not None:
            raise self.fail_on_infer
        if self.output_fn is not None:
            return self.output_fn(input_tensor, input_shape)
        return self.output

    def get_model_info(self):
        return self.model_info.copy()

    def get_supported_formats(self):
        return ['.fake']


def grid_output(digit_cells: Optional[Dict[Tuple[int, int], float]] = None,
                expiry_cells: Optional[Dict[Tuple[int, int], float]] = None) -> np.ndarray:
    """Flat FindFour output with the given cells flagged."""
    probs = np.zeros((C.GRID_ROWS, C.GRID_COLS, C.GRID_CLASSES), dtype=np.float32)
    probs[:, :, 0] = 1.0
    for (row, col), conf in (digit_cells or {}).items():
        probs[row, col] = (1.0 - conf, conf, 0.0)
    for (row, col), conf in (expiry_cells or {}).items():
        probs[row, col] = (1.0 - conf, 0.0, conf)
    return probs.ravel()


def digit_output(digits: Dict[int, int], confidence: float = 0.9) -> np.ndarray:
    """Flat digit-model output: ``{position: digit}``, background elsewhere."""
    probs = np.zeros((C.NUM_PREDICTIONS, C.DIGIT_CLASSES), dtype=np.float32)
    probs[:, C.BACKGROUND_CLASS] = 0.95
    for position, digit in digits.items():
        probs[position, :] = 0.0
        probs[position, digit] = confidence
        probs[position, C.BACKGROUND_CLASS] = 1.0 - confidence
    return probs.ravel()


def spaced_digits(text: str, start: int = 1, step: int = 4) -> np.ndarray:
    """Digit-model output reading ``text`` at evenly spaced positions."""
    return digit_output({start + i * step: int(ch) for i, ch in enumerate(text)})


def make_box(row: int, col: int, confidence: float = 0.9) -> DetectedBox:
    return DetectedBox(row=row, col=col, confidence=confidence, rect=Rect(col * 8.0, row * 8.0, 80.0, 36.0))


# A painted 480x302 card: each number group and the expiry get their own
# gray level so the fake digit model can tell the crops apart.
CARD_LINE_ROW = 10
CARD_LINE_COLS = (5, 17, 29, 41)
CARD_EXPIRY_CELL = (20, 5)
_GROUP_SHADES = (10, 20, 30, 40)
_EXPIRY_SHADE = 50
_BACKGROUND_SHADE = 200


def _cell_rect(row: int, col: int) -> Tuple[int, int, int, int]:
    size = Size(C.CARD_WIDTH, C.CARD_HEIGHT)
    box = DetectedBox.from_grid(row, col, 1.0, C.GRID_ROWS, C.GRID_COLS,
                                FindFourModel.box_size, FindFourModel.card_size, size)
    x1, y1, x2, y2 = box.rect.to_xyxy()
    return x1, y1, x2 + 1, y2 + 1


def painted_card_image() -> np.ndarray:
    image = np.full((C.CARD_HEIGHT, C.CARD_WIDTH, 3), _BACKGROUND_SHADE, dtype=np.uint8)
    for col, shade in zip(CARD_LINE_COLS, _GROUP_SHADES):
        x1, y1, x2, y2 = _cell_rect(CARD_LINE_ROW, col)
        image[y1:y2, x1:x2] = shade
    x1, y1, x2, y2 = _cell_rect(*CARD_EXPIRY_CELL)
    image[y1:y2, x1:x2] = _EXPIRY_SHADE
    return image


def painted_card_digit_fn(number: str = VALID_CARD_NUMBER, expiry: str = "140512"):
    """Digit-model output chosen by the gray level of the crop's first pixel."""
    by_shade = {shade: spaced_digits(number[i * 4:(i + 1) * 4]) for i, shade in enumerate(_GROUP_SHADES)}
    by_shade[_EXPIRY_SHADE] = digit_output({2 * i: int(ch) for i, ch in enumerate(expiry)})
    empty = digit_output({})

    def output_fn(tensor: np.ndarray, shape: tuple) -> np.ndarray:
        shade = int(round(float(tensor[0]) * 255))
        return by_shade.get(shade, empty)

    return output_fn


def painted_card_grid() -> np.ndarray:
    return grid_output(
        digit_cells={(CARD_LINE_ROW, col): 0.9 - i * 0.01 for i, col in enumerate(CARD_LINE_COLS)},
        expiry_cells={CARD_EXPIRY_CELL: 0.8},
    )


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clean_env():
    """Run with none of the scanner environment variables set."""
    keys = ["CARDSCAN_MODELS_DIR", "CARDSCAN_DEVICE", "CARDSCAN_ERROR_CORRECTION_MS",
            "CARDSCAN_LOG_LEVEL", "DEBUG_LOGGING"]
    saved = {k: os.environ.pop(k) for k in keys if k in os.environ}
    try:
        yield
    finally:
        os.environ.update(saved)


@pytest.fixture
def fake_backend_factory():
    return FakeBackend


@pytest.fixture
def card_image():
    return painted_card_image()


@pytest.fixture
def card_models():
    """Loaded-on-demand models that read VALID_CARD_NUMBER and 1405/12 off card_image."""
    grid_backend = FakeBackend(output=painted_card_grid())
    digit_backend = FakeBackend(output_fn=painted_card_digit_fn())
    return ModelContext(FindFourModel(grid_backend), RecognizedDigitsModel(digit_backend))


@pytest.fixture
def empty_models():
    """Models that never see a card."""
    grid_backend = FakeBackend(output=grid_output())
    digit_backend = FakeBackend(output=digit_output({}))
    return ModelContext(FindFourModel(grid_backend), RecognizedDigitsModel(digit_backend))


@pytest.fixture
def failing_models():
    """Models whose grid engine throws on every frame."""
    grid_backend = FakeBackend(output=grid_output(), fail_on_infer=RuntimeError("engine crashed"))
    digit_backend = FakeBackend(output=digit_output({}))
    return ModelContext(FindFourModel(grid_backend), RecognizedDigitsModel(digit_backend))


class ResultCollector:
    """Thread-safe callback sink that can be waited on."""

    def __init__(self):
        self.results = []
        self._event = threading.Event()
        self._lock = threading.Lock()

    def __call__(self, *args):
        with self._lock:
            self.results.append(args[0] if len(args) == 1 else args)
        self._event.set()

    def wait(self, timeout: float = 5.0) -> bool:
        return self._event.wait(timeout)

    def reset(self):
        with self._lock:
            self.results.clear()
        self._event.clear()


@pytest.fixture
def collector():
    return ResultCollector()


@pytest.fixture
def integration_test_env():
    """Integration tests run by default; set SKIP_INTEGRATION_TESTS=1 to skip them."""
    if os.getenv("SKIP_INTEGRATION_TESTS"):
        pytest.skip("Integration tests disabled by SKIP_INTEGRATION_TESTS.")
    return True
