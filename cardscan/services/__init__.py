"""Card OCR pipeline services."""

from .frame_cropper import compute_crop_rect, crop_frame
from .grid_classifier import FindFourModel
from .digit_classifier import RecognizedDigits, RecognizedDigitsModel
from .post_detection import PostDetectionAlgorithm
from .number_assembler import RecognizeNumbers
from .expiry_parser import parse_expiry_string, best_expiry_box, expiry_from_box
from .result_aggregator import ResultAggregator, AggregatorState, FrequencyTable
from .model_context import ModelContext
from .ocr_service import OCRService, OcrPrediction
from .scan_worker import ScanWorker, FrameRequest
from .scan_session import ScanSession

__all__ = [
    "compute_crop_rect", "crop_frame", "FindFourModel", "RecognizedDigits", "RecognizedDigitsModel",
    "PostDetectionAlgorithm", "RecognizeNumbers", "parse_expiry_string", "best_expiry_box",
    "expiry_from_box", "ResultAggregator", "AggregatorState", "FrequencyTable", "ModelContext",
    "OCRService", "OcrPrediction", "ScanWorker", "FrameRequest", "ScanSession"
]
