"""High level entry point wiring configuration, models, worker and session."""

import logging
from typing import Callable, Optional

import numpy as np

from .config.settings import Config, load_config
from .core.entities import CardScanResult, DigitResult, Expiry
from .core.logging_config import configure_logging
from .services.model_context import ModelContext
from .services.scan_session import ScanSession
from .services.scan_worker import Dispatcher, ScanWorker

logger = logging.getLogger(__name__)


class CardScanner:
    """Scans one payment card at a time from a stream of camera frames.

    Typical use from a camera callback::

        scanner = CardScanner(on_card_scanned=handle_card)
        scanner.start()
        ...
        scanner.submit_frame(nv21_bytes, 1280, 720)
        ...
        scanner.close()

    The models are owned by the scanner and survive ``start``/``stop``
    cycles, so restarting a scan does not reload them.
    """

    def __init__(self, config: Optional[Config] = None,
                 on_card_scanned: Optional[Callable[[CardScanResult], None]] = None,
                 on_fatal_error: Optional[Callable[[], None]] = None,
                 on_update: Optional[Callable[[Optional[str], Optional[Expiry]], None]] = None,
                 on_prediction: Optional[Callable[[DigitResult], None]] = None,
                 models: Optional[ModelContext] = None,
                 dispatcher: Optional[Dispatcher] = None,
                 configure_logs: bool = True):
        self.config = config or load_config()
        self.config.validate()

        if configure_logs:
            configure_logging(
                log_level="DEBUG" if self.config.debug else self.config.log_level,
                log_dir=self.config.log_dir,
                enable_file_logging=self.config.enable_file_logging,
                structured_logging=self.config.structured_logging,
            )

        self.models = models or ModelContext.from_config(self.config)
        self.worker = ScanWorker(
            self.models,
            dispatcher=dispatcher,
            draw_debug_boxes=self.config.draw_debug_boxes or self.config.debug,
            use_accelerated_yuv=self.config.use_accelerated_yuv,
        )
        self.session = ScanSession(
            self.worker,
            error_correction_duration_ms=self.config.error_correction_duration_ms,
            on_card_scanned=on_card_scanned,
            on_fatal_error=on_fatal_error,
            on_update=on_update,
            on_prediction=on_prediction,
            show_while_scanning=self.config.show_number_and_expiry_as_scanning,
            roi_center_y_ratio=self.config.roi_center_y_ratio,
            sensor_orientation=self.config.sensor_orientation,
        )
        self._closed = False

    @property
    def is_scanning(self) -> bool:
        return self.session.is_active and not self.session.sent_response

    def start(self) -> str:
        """Start a new scan and return its session id."""
        session_id = self.session.start()
        logger.info(f"Card scan started (window {self.config.error_correction_duration_ms} ms)")
        return session_id

    def stop(self) -> None:
        self.session.pause()

    def cancel(self) -> bool:
        return self.session.cancel()

    def submit_frame(self, frame_bytes: bytes, width: int, height: int,
                     sensor_orientation: Optional[int] = None,
                     roi_center_y_ratio: Optional[float] = None) -> bool:
        return self.session.submit_frame(frame_bytes, width, height, sensor_orientation, roi_center_y_ratio)

    def submit_image(self, image: np.ndarray, sensor_orientation: int = 0,
                     roi_center_y_ratio: Optional[float] = None) -> bool:
        return self.session.submit_image(image, sensor_orientation, roi_center_y_ratio)

    def close(self) -> None:
        """Stop the worker thread and release the models."""
        if self._closed:
            return
        self._closed = True
        self.session.pause()
        self.worker.stop()
        self.models.close()

    def __enter__(self) -> "CardScanner":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
