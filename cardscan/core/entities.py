"""Domain entities (data-only structures) used across services."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple, List, Any, Union

BBox = Tuple[int,int,int,int]  # (x1,y1,x2,y2)

@dataclass(slots=True, frozen=True)
class Size:
    width: float
    height: float

@dataclass(slots=True, frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    def to_xyxy(self) -> BBox:
        return (int(self.x), int(self.y), int(self.x + self.width), int(self.y + self.height))

@dataclass(slots=True, eq=False)
class DetectedBox:
    """A flagged grid cell and the pixel rectangle it covers.

    Boxes order by confidence, so ``sorted(boxes)[-1]`` is the most
    confident detection.
    """
    row: int
    col: int
    confidence: float
    rect: Rect

    def __lt__(self, other: "DetectedBox") -> bool:
        return self.confidence < other.confidence

    @classmethod
    def from_grid(cls, row: int, col: int, confidence: float, num_rows: int, num_cols: int,
                  box_size: Size, card_size: Size, image_size: Size) -> "DetectedBox":
        if not (0 <= row < num_rows and 0 <= col < num_cols):
            raise ValueError(f"Grid cell ({row}, {col}) outside {num_rows}x{num_cols} grid")
        from ..utils.geometry import box_rect
        rect = box_rect(row, col, num_rows, num_cols, box_size, card_size, image_size)
        return cls(row=row, col=col, confidence=float(confidence), rect=rect)

@dataclass(slots=True, frozen=True)
class Expiry:
    month: int
    year: int
    string: str

    def format(self) -> str:
        """Raw digits with a '/' before the fifth digit."""
        if len(self.string) <= 4:
            return self.string
        return f"{self.string[:4]}/{self.string[4:]}"


@dataclass(slots=True)
class DigitResult:
    """Per-frame OCR outcome delivered to scan listeners."""
    number: Optional[str]
    expiry: Optional[Expiry]
    frame: Any  # numpy ndarray (RGB), the cropped upright frame
    digit_boxes: List[DetectedBox] = field(default_factory=list)
    expiry_box: Optional[DetectedBox] = None

@dataclass(slots=True)
class ObjectResult:
    """Per-frame outcome of the object path: the square crop only."""
    frame: Any
    width: int
    height: int

@dataclass(slots=True)
class FatalResult:
    """The inference engine failed; the session cannot continue."""
    error: str
    is_ocr: bool = True

ScanResult = Union[DigitResult, ObjectResult, FatalResult]

@dataclass(slots=True, frozen=True)
class CardScanResult:
    """Terminal result of a scan session."""
    number: Optional[str]
    expiry: Optional[Expiry] = None
    cancelled: bool = False

    @property
    def month(self) -> Optional[str]:
        return str(self.expiry.month) if self.expiry else None

    @property
    def year(self) -> Optional[str]:
        return str(self.expiry.year) if self.expiry else None

    @classmethod
    def cancelled_result(cls) -> "CardScanResult":
        return cls(number=None, expiry=None, cancelled=True)
