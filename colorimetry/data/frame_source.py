"""
Frame sources and ROI geometry.

``ArrayFrameSource`` holds the latest frame as a numpy array and is fed by
whatever produces frames (a camera thread, an uploaded photo, a test).
``OpenCVFrameSource`` pulls frames directly from ``cv2.VideoCapture``.
"""

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from ..core.config import EstimationConfig, DEFAULT_CONFIG
from ..core.exceptions import FrameSourceError
from ..core.interfaces import IFrameSource

logger = logging.getLogger(__name__)


def clamp_roi_size(size: int, config: EstimationConfig = DEFAULT_CONFIG) -> int:
    """Clamp a requested ROI side length to [roi_min, roi_max]."""
    return config.clamp_roi(size)


def centered_roi(frame_width: int, frame_height: int, roi_size: int) -> Tuple[int, int, int, int]:
    """
    Square ROI centered in the frame, cropped to the frame bounds.

    Returns:
        (x0, y0, width, height); width/height are 0 for an empty frame
    """
    cx, cy = frame_width // 2, frame_height // 2
    half = roi_size // 2
    x0 = max(0, cx - half)
    y0 = max(0, cy - half)
    width = max(0, min(roi_size, frame_width - x0))
    height = max(0, min(roi_size, frame_height - y0))
    return x0, y0, width, height


def draw_roi(frame: np.ndarray, roi: Tuple[int, int, int, int],
             color: Tuple[int, ...] = (0, 255, 0), thickness: int = 2) -> np.ndarray:
    """Draw the ROI box on a copy of the frame."""
    x0, y0, w, h = roi
    out = frame.copy()
    if w > 0 and h > 0:
        cv2.rectangle(out, (x0, y0), (x0 + w - 1, y0 + h - 1), color, thickness)
    return out


def _to_rgba(frame: np.ndarray, channel_order: str) -> np.ndarray:
    """Convert an 8-bit gray/RGB/BGR/RGBA/BGRA frame to RGBA."""
    frame = np.asarray(frame)
    if frame.dtype != np.uint8:
        frame = np.clip(frame, 0, 255).astype(np.uint8)

    if frame.ndim == 2:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2RGBA)
    if frame.ndim != 3 or frame.shape[2] not in (3, 4):
        raise ValueError(f"Unsupported frame shape: {frame.shape}")

    order = channel_order.upper()
    if order == 'RGB':
        code = cv2.COLOR_RGB2RGBA if frame.shape[2] == 3 else None
    elif order == 'BGR':
        code = cv2.COLOR_BGR2RGBA if frame.shape[2] == 3 else cv2.COLOR_BGRA2RGBA
    else:
        raise ValueError(f"Unknown channel order: {channel_order}")

    if code is None:
        return frame.copy()
    return cv2.cvtColor(frame, code)


class ArrayFrameSource(IFrameSource):
    """Frame source backed by the most recently supplied numpy frame."""

    def __init__(self, frame: Optional[np.ndarray] = None, channel_order: str = 'RGB'):
        self._frame: Optional[np.ndarray] = None
        if frame is not None:
            self.set_frame(frame, channel_order)

    def set_frame(self, frame: np.ndarray, channel_order: str = 'RGB') -> None:
        """Replace the current frame (gray, RGB(A) or BGR(A), uint8)."""
        self._frame = _to_rgba(frame, channel_order)

    def set_bgr_frame(self, frame: np.ndarray) -> None:
        """Replace the current frame with an OpenCV BGR(A) frame."""
        self.set_frame(frame, 'BGR')

    def clear(self) -> None:
        self._frame = None

    @property
    def has_frame(self) -> bool:
        return self._frame is not None

    def current_frame(self) -> Optional[np.ndarray]:
        """Copy of the current RGBA frame, or None."""
        frame = self._frame
        return None if frame is None else frame.copy()

    def frame_size(self) -> Tuple[int, int]:
        frame = self._frame
        if frame is None:
            return 0, 0
        h, w = frame.shape[:2]
        return w, h

    def read_region(self, x: int, y: int, width: int, height: int) -> np.ndarray:
        # The capture thread may replace or clear the frame at any time
        frame = self._frame
        if frame is None:
            raise FrameSourceError("No frame available")
        fh, fw = frame.shape[:2]
        x0, y0 = max(0, x), max(0, y)
        x1, y1 = min(fw, x + width), min(fh, y + height)
        if x1 <= x0 or y1 <= y0:
            return np.zeros((0, 0, 4), dtype=np.uint8)
        return frame[y0:y1, x0:x1].copy()


class OpenCVFrameSource(ArrayFrameSource):
    """Frame source that reads from a camera device through OpenCV."""

    def __init__(self, device_id: int = 0, width: int = 640, height: int = 480, fps: int = 30):
        super().__init__()
        self.device_id = device_id
        self.width = width
        self.height = height
        self.fps = fps
        self.cap = None

    def open(self) -> bool:
        """Open the camera device; returns False when it is unavailable."""
        self.cap = cv2.VideoCapture(self.device_id)
        if not self.cap.isOpened():
            logger.error("Could not open camera device %s", self.device_id)
            self.cap = None
            return False

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)
        logger.info(
            "Using OpenCV camera %s: %sx%s @ %sfps",
            self.device_id,
            self.cap.get(cv2.CAP_PROP_FRAME_WIDTH),
            self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT),
            self.cap.get(cv2.CAP_PROP_FPS),
        )
        return True

    def refresh(self) -> bool:
        """Grab the next frame from the device. Returns False if none was read."""
        if self.cap is None:
            return False
        ret, frame = self.cap.read()
        if not ret or frame is None:
            logger.warning("Failed to read frame from camera %s", self.device_id)
            return False
        self.set_bgr_frame(frame)
        return True

    def release(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None
        self.clear()
