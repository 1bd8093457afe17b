"""A card scanning session: frame admission, voting and the final result."""

import logging
import threading
import uuid
from typing import Callable, Optional

import numpy as np

from ..core.entities import CardScanResult, DigitResult, Expiry, FatalResult, ObjectResult, ScanResult
from ..core.exceptions import ScanError
from ..core.logging_config import CorrelationContext
from .result_aggregator import AggregatorState, ResultAggregator
from .scan_worker import FrameRequest, ScanWorker

logger = logging.getLogger(__name__)


class ScanSession:
    """Feeds camera frames to the worker and turns predictions into one result.

    At most one frame is in flight: a frame that arrives while the previous
    one is still being classified is dropped. The gate reopens once the
    result of the in-flight frame has been handled.

    Callbacks:
        on_prediction(DigitResult): every processed frame of the session
        on_card_scanned(CardScanResult): once per session (also on cancel)
        on_fatal_error(): once, when the inference engine fails
        on_update(number, expiry): live leaders while scanning
        on_object(ObjectResult): frames of the object path
    """

    def __init__(self, worker: ScanWorker,
                 error_correction_duration_ms: int = 2000,
                 on_card_scanned: Optional[Callable[[CardScanResult], None]] = None,
                 on_fatal_error: Optional[Callable[[], None]] = None,
                 on_update: Optional[Callable[[Optional[str], Optional[Expiry]], None]] = None,
                 on_object: Optional[Callable[[ObjectResult], None]] = None,
                 on_prediction: Optional[Callable[[DigitResult], None]] = None,
                 is_ocr: bool = True,
                 show_while_scanning: bool = True,
                 roi_center_y_ratio: float = 0.5,
                 sensor_orientation: int = 90,
                 clock: Optional[Callable[[], int]] = None):
        self.worker = worker
        self.on_card_scanned = on_card_scanned
        self.on_fatal_error = on_fatal_error
        self.on_update = on_update
        self.on_object = on_object
        self.on_prediction = on_prediction
        self.is_ocr = is_ocr
        self.show_while_scanning = show_while_scanning
        self.roi_center_y_ratio = roi_center_y_ratio
        self.sensor_orientation = sensor_orientation

        if clock is not None:
            self.aggregator = ResultAggregator(error_correction_duration_ms, clock=clock)
        else:
            self.aggregator = ResultAggregator(error_correction_duration_ms)

        self._gate = threading.Semaphore(1)
        self._state_lock = threading.Lock()
        self._active = False
        self._sent_response = False
        self._fatal_reported = False
        self.session_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def sent_response(self) -> bool:
        return self._sent_response

    @property
    def state(self) -> AggregatorState:
        return self.aggregator.state

    def start(self) -> str:
        """Begin (or restart) a session with empty vote tables."""
        with self._state_lock:
            self.aggregator.reset()
            self._sent_response = False
            self._fatal_reported = False
            self._active = True
            self.session_id = uuid.uuid4().hex[:12]

        with CorrelationContext(self.session_id):
            logger.info("Scan session started")
            self.worker.warm_up()
        return self.session_id

    def resume(self) -> str:
        return self.start()

    def pause(self) -> None:
        with self._state_lock:
            self._active = False
        with CorrelationContext(self.session_id):
            logger.info("Scan session paused")

    def cancel(self) -> bool:
        """End the session without a card (user backed out)."""
        with self._state_lock:
            if self._sent_response or not self._active:
                return False
            self._sent_response = True
        if self.on_card_scanned:
            self.on_card_scanned(CardScanResult.cancelled_result())
        return True

    def submit_frame(self, frame_bytes: bytes, width: int, height: int,
                     sensor_orientation: Optional[int] = None,
                     roi_center_y_ratio: Optional[float] = None) -> bool:
        """Offer an NV21 camera frame. Returns False if it was not admitted."""
        return self._submit(FrameRequest(
            frame_bytes=frame_bytes, width=width, height=height,
            sensor_orientation=self.sensor_orientation if sensor_orientation is None else sensor_orientation,
            roi_center_y_ratio=self.roi_center_y_ratio if roi_center_y_ratio is None else roi_center_y_ratio,
            is_ocr=self.is_ocr,
        ))

    def submit_image(self, image: np.ndarray, sensor_orientation: int = 0,
                     roi_center_y_ratio: Optional[float] = None) -> bool:
        """Offer an already decoded RGB frame. Returns False if it was not admitted."""
        return self._submit(FrameRequest(
            image=image, width=image.shape[1], height=image.shape[0],
            sensor_orientation=sensor_orientation,
            roi_center_y_ratio=self.roi_center_y_ratio if roi_center_y_ratio is None else roi_center_y_ratio,
            is_ocr=self.is_ocr,
        ))

    def _submit(self, request: FrameRequest) -> bool:
        if not self._active or self._sent_response:
            return False
        if not self._gate.acquire(blocking=False):
            return False

        release = self._permit()
        session_id = self.session_id
        request.callback = lambda result: self._on_result(result, release, session_id)
        request.on_drop = release
        try:
            self.worker.post(request)
        except ScanError:
            release()
            raise
        return True

    def _permit(self) -> Callable[[], None]:
        """Release function for one admitted frame; only the first call counts."""
        lock = threading.Lock()
        held = [True]

        def release() -> None:
            with lock:
                if not held[0]:
                    return
                held[0] = False
            self._gate.release()

        return release

    def _on_result(self, result: ScanResult, release: Callable[[], None], session_id: Optional[str]) -> None:
        with CorrelationContext(session_id):
            try:
                if session_id != self.session_id:
                    logger.debug("Ignoring result of a frame from an earlier session")
                elif isinstance(result, FatalResult):
                    self._handle_fatal(result)
                elif isinstance(result, DigitResult):
                    self._handle_prediction(result)
                elif isinstance(result, ObjectResult) and self.on_object and self._active:
                    self.on_object(result)
            finally:
                release()

    def _handle_fatal(self, result: FatalResult) -> None:
        with self._state_lock:
            if self._fatal_reported:
                return
            self._fatal_reported = True
            self._sent_response = True
            self._active = False
        logger.error(f"Scan session ended by engine failure: {result.error}")
        if self.on_fatal_error:
            self.on_fatal_error()

    def _handle_prediction(self, result: DigitResult) -> None:
        if self._sent_response or not self._active:
            return

        if self.on_prediction:
            self.on_prediction(result)

        final = self.aggregator.add_prediction(result.number, result.expiry)

        if self.show_while_scanning and self.on_update and self.aggregator.first_result_ms is not None:
            number, expiry = self.aggregator.current_leaders()
            self.on_update(number, expiry)

        if final is None:
            return

        with self._state_lock:
            if self._sent_response:
                return
            self._sent_response = True
        if self.on_card_scanned:
            self.on_card_scanned(final)
