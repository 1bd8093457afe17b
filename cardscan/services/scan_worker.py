"""Background worker that runs the OCR pipeline one frame at a time."""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from ..core.entities import DigitResult, FatalResult, ObjectResult, ScanResult
from ..core.exceptions import FrameError, ModelError, ScanError
from ..utils.image_utils import blank_frame, draw_boxes_on_image, yuv_to_rgb
from .frame_cropper import crop_frame
from .model_context import ModelContext
from .ocr_service import OCRService

logger = logging.getLogger(__name__)

ResultCallback = Callable[[ScanResult], None]
Dispatcher = Callable[[Callable[[], None]], None]


def _call_inline(fn: Callable[[], None]) -> None:
    fn()


@dataclass(slots=True)
class FrameRequest:
    """One unit of work for the worker.

    Either ``frame_bytes`` (NV21 straight from the camera) or an already
    decoded RGB ``image`` is set; a warm-up request carries neither.
    """
    callback: Optional[ResultCallback] = None
    frame_bytes: Optional[bytes] = None
    width: int = 0
    height: int = 0
    sensor_orientation: int = 90
    roi_center_y_ratio: float = 0.5
    image: Optional[np.ndarray] = None
    is_ocr: bool = True
    is_warm_up: bool = False
    on_drop: Optional[Callable[[], None]] = None


class ScanWorker:
    """Single consumer thread with a one-slot, keep-latest inbox.

    ``post`` never blocks: a request still waiting in the slot is replaced
    by the newer one. Results go back through ``dispatcher``, which decides
    the thread callbacks run on (inline on the worker thread by default).
    """

    def __init__(self, models: ModelContext, dispatcher: Optional[Dispatcher] = None,
                 draw_debug_boxes: bool = False, use_accelerated_yuv: bool = True):
        self.models = models
        self.ocr = OCRService(models)
        self.dispatcher = dispatcher or _call_inline
        self.draw_debug_boxes = draw_debug_boxes
        self.use_accelerated_yuv = use_accelerated_yuv

        self._inbox: "queue.Queue[FrameRequest]" = queue.Queue(maxsize=1)
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._start_lock = threading.Lock()
        self._stopped = False
        self._frames_processed = 0
        self._frames_dropped = 0

    def start(self) -> None:
        with self._start_lock:
            if self._stopped:
                raise ScanError("Scan worker has been stopped")
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run_loop, name="ScanWorker", daemon=True)
            self._thread.start()
            logger.info("Scan worker started")

    def stop(self, timeout: float = 2.0) -> None:
        with self._start_lock:
            self._stopped = True
            self._stop_event.set()
            thread = self._thread
        if thread and thread.is_alive():
            thread.join(timeout=timeout)
        logger.info(f"Scan worker stopped ({self._frames_processed} processed, {self._frames_dropped} dropped)")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def has_pending(self) -> bool:
        return not self._inbox.empty()

    def post(self, request: FrameRequest) -> bool:
        """Queue a request, replacing any stale one. Returns True if one was replaced."""
        self.start()
        replaced = False
        while True:
            try:
                self._inbox.put_nowait(request)
                return replaced
            except queue.Full:
                try:
                    stale = self._inbox.get_nowait()
                except queue.Empty:
                    continue
                replaced = True
                self._frames_dropped += 1
                if stale.on_drop is not None:
                    try:
                        stale.on_drop()
                    except Exception:
                        logger.exception("Error in drop callback")

    def warm_up(self) -> bool:
        """Load the models ahead of the first frame. No-op if loaded or busy."""
        if self.models.is_initialized or self.has_pending():
            return False
        self.post(FrameRequest(is_warm_up=True))
        return True

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                request = self._inbox.get(timeout=0.2)
            except queue.Empty:
                continue

            try:
                self._process(request)
            except Exception:
                logger.exception("Unexpected error while processing frame")
            finally:
                self._inbox.task_done()

    def _process(self, request: FrameRequest) -> None:
        if request.is_warm_up:
            self._warm_up_models()
            return

        try:
            frame = self._prepare_frame(request)
        except FrameError as e:
            logger.warning(f"Dropping unusable frame: {e}")
            empty: ScanResult = DigitResult(None, None, None) if request.is_ocr else ObjectResult(None, 0, 0)
            self._deliver(request.callback, empty)
            return

        if request.is_ocr:
            result = self._run_ocr(frame)
        else:
            result = ObjectResult(frame=frame, width=frame.shape[1], height=frame.shape[0])

        self._frames_processed += 1
        self._deliver(request.callback, result)

    def _warm_up_models(self) -> None:
        start_time = time.time()
        try:
            self.ocr.predict(blank_frame())
            logger.info(f"Models warmed up in {int((time.time() - start_time) * 1000)} ms")
        except ModelError as e:
            # The first real frame will hit the same error and report it
            logger.error(f"Model warm-up failed: {e}")

    def _prepare_frame(self, request: FrameRequest) -> np.ndarray:
        if request.image is not None:
            image = request.image
        elif request.frame_bytes is not None:
            image = yuv_to_rgb(request.frame_bytes, request.width, request.height,
                               use_accelerated=self.use_accelerated_yuv)
        else:
            raise FrameError("Request carries no frame")
        return crop_frame(image, request.sensor_orientation, request.roi_center_y_ratio, request.is_ocr)

    def _run_ocr(self, frame: np.ndarray) -> ScanResult:
        try:
            prediction = self.ocr.predict(frame)
        except ModelError as e:
            logger.exception(f"Unrecoverable exception in OCR: {e}")
            return FatalResult(error=str(e))

        output_frame = frame
        if self.draw_debug_boxes:
            output_frame = draw_boxes_on_image(frame, prediction.digit_boxes, prediction.expiry_box)

        return DigitResult(
            number=prediction.number,
            expiry=prediction.expiry,
            frame=output_frame,
            digit_boxes=list(prediction.digit_boxes),
            expiry_box=prediction.expiry_box,
        )

    def _deliver(self, callback: Optional[ResultCallback], result: ScanResult) -> None:
        if callback is None:
            return

        def run() -> None:
            try:
                callback(result)
            except Exception:
                logger.exception("Error in scan result callback")

        self.dispatcher(run)
