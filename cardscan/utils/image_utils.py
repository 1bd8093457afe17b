"""Image processing utilities for camera frames (RGB, uint8, HxWx3)."""

import logging
import cv2
import numpy as np
from typing import Iterable, Optional, Tuple

from ..core.entities import DetectedBox
from ..core.exceptions import FrameError

logger = logging.getLogger(__name__)

_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def nv21_buffer_size(width: int, height: int) -> int:
    """Bytes in an NV21 frame: full-size Y plane plus interleaved VU at quarter resolution."""
    return width * height + 2 * ((width + 1) // 2) * ((height + 1) // 2)


def yuv_to_rgb(data, width: int, height: int, use_accelerated: bool = True) -> np.ndarray:
    """Convert an NV21 camera buffer into an RGB frame.

    OpenCV does the conversion when it accepts the buffer; otherwise the
    software path below is used.

    Raises:
        FrameError: if the buffer is too short for the given size
    """
    if width <= 0 or height <= 0:
        raise FrameError(f"Invalid frame size {width}x{height}")

    buf = np.frombuffer(data, dtype=np.uint8)
    expected = nv21_buffer_size(width, height)
    if buf.size < expected:
        raise FrameError(f"NV21 buffer too short: got {buf.size} bytes, need {expected} for {width}x{height}")

    if use_accelerated and width % 2 == 0 and height % 2 == 0:
        try:
            yuv = buf[:width * height * 3 // 2].reshape(height * 3 // 2, width)
            return cv2.cvtColor(yuv, cv2.COLOR_YUV2RGB_NV21)
        except cv2.error as e:
            logger.warning(f"Accelerated YUV conversion failed, using software path: {e}")

    return yuv_to_rgb_software(buf, width, height)


def yuv_to_rgb_software(buf: np.ndarray, width: int, height: int) -> np.ndarray:
    """NV21 to RGB with nearest-neighbour chroma upsampling (BT.601 limited range)."""
    frame_size = width * height
    chroma_w = (width + 1) // 2
    chroma_h = (height + 1) // 2

    y = buf[:frame_size].reshape(height, width).astype(np.float32)
    vu = buf[frame_size:frame_size + 2 * chroma_w * chroma_h].reshape(chroma_h, chroma_w, 2).astype(np.float32)

    # Each chroma sample covers a 2x2 block of luma samples
    v = np.repeat(np.repeat(vu[..., 0], 2, axis=0), 2, axis=1)[:height, :width] - 128.0
    u = np.repeat(np.repeat(vu[..., 1], 2, axis=0), 2, axis=1)[:height, :width] - 128.0

    y = np.maximum(0.0, y - 16.0) * 1.164
    r = y + 1.596 * v
    g = y - 0.813 * v - 0.391 * u
    b = y + 2.018 * u

    rgb = np.stack([r, g, b], axis=-1)
    return np.clip(rgb, 0, 255).astype(np.uint8)


def crop_image(image: np.ndarray, x: int, y: int, w: int, h: int) -> np.ndarray:
    """Crop (x, y, w, h) out of the image, clipped to its bounds."""
    img_h, img_w = image.shape[:2]

    x1 = max(0, min(x, img_w))
    y1 = max(0, min(y, img_h))
    x2 = max(x1, min(x + w, img_w))
    y2 = max(y1, min(y + h, img_h))

    return image[y1:y2, x1:x2]


def rotate_image(image: np.ndarray, degrees: int) -> np.ndarray:
    """Rotate clockwise by a right angle."""
    degrees = degrees % 360
    if degrees == 0:
        return image
    if degrees not in _ROTATIONS:
        raise FrameError(f"Unsupported rotation: {degrees}")
    return cv2.rotate(image, _ROTATIONS[degrees])


def to_input_tensor(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """Resize (nearest neighbour) and flatten to a row-major RGB float32 tensor in [0, 1]."""
    if image.shape[1] != width or image.shape[0] != height:
        image = cv2.resize(image, (width, height), interpolation=cv2.INTER_NEAREST)
    return (image.astype(np.float32) / 255.0).ravel()


def blank_frame(width: int = 480, height: int = 302, gray: int = 128) -> np.ndarray:
    """Uniform gray frame, used to warm the models up."""
    return np.full((height, width, 3), gray, dtype=np.uint8)


def draw_boxes_on_image(frame: np.ndarray, boxes: Iterable[DetectedBox],
                        expiry_box: Optional[DetectedBox] = None,
                        digit_color: Tuple[int, int, int] = (0, 255, 0),
                        expiry_color: Tuple[int, int, int] = (255, 0, 0)) -> np.ndarray:
    """Copy of the frame with digit boxes (green) and the expiry box (red) outlined."""
    canvas = frame.copy()
    for box in boxes:
        x1, y1, x2, y2 = box.rect.to_xyxy()
        cv2.rectangle(canvas, (x1, y1), (x2, y2), digit_color, 3)

    if expiry_box is not None:
        x1, y1, x2, y2 = expiry_box.rect.to_xyxy()
        cv2.rectangle(canvas, (x1, y1), (x2, y2), expiry_color, 3)

    return canvas
