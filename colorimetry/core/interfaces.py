"""
Interfaces for the colorimetry engine.

Defines contracts for the external collaborators the engine talks to: the
frame source, the durable key-value store and the calibration asset source.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple
import numpy as np


class IFrameSource(ABC):
    """Interface for anything that can hand out pixels of the current frame."""

    @abstractmethod
    def frame_size(self) -> Tuple[int, int]:
        """Return (width, height) of the current frame, (0, 0) if none."""
        pass

    @abstractmethod
    def read_region(self, x: int, y: int, width: int, height: int) -> np.ndarray:
        """
        Extract a rectangular region of the current frame.

        Args:
            x: Left edge in pixels
            y: Top edge in pixels
            width: Region width in pixels
            height: Region height in pixels

        Returns:
            RGBA uint8 array shaped (height, width, 4)
        """
        pass


class IKeyValueStore(ABC):
    """Interface for durable key-value persistence."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, or None when the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, data: bytes) -> None:
        """Store bytes under key, replacing any previous value."""
        pass


class ICalibrationAssetSource(ABC):
    """Interface for calibration curve assets (default and named presets)."""

    @abstractmethod
    def fetch(self, name: str) -> Any:
        """Return the decoded JSON payload of the named asset."""
        pass
