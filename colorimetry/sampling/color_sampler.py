"""
Robust hue extraction from a buffer of RGB(A) pixels.

Pixels are optionally white balanced (gray world), converted to HSV with
OpenCV, gated on saturation/value to drop background and noise, and reduced
to a single hue with a brightness-weighted circular mean.
"""

import logging
import math
from typing import Optional, Tuple, Union, Sequence

import cv2
import numpy as np

from ..core.angles import normalize_hue
from ..core.config import EstimationConfig, DEFAULT_CONFIG
from ..core.data_structures import HueEstimate

logger = logging.getLogger(__name__)

# Resultant vectors shorter than this fraction of the total weight are
# treated as exact cancellation.
DEGENERATE_RESULTANT = 1e-9

PixelBuffer = Union[np.ndarray, Sequence[Sequence[int]]]


def _split_channels(pixels: PixelBuffer, alpha_threshold: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Flatten a pixel buffer into an (N, 3) uint8 RGB array plus a validity mask.

    Accepts (..., 3) RGB or (..., 4) RGBA data. With alpha, pixels below
    ``alpha_threshold`` are marked invalid.
    """
    arr = np.asarray(pixels)
    if arr.size == 0:
        return np.zeros((0, 3), dtype=np.uint8), np.zeros(0, dtype=bool)

    if arr.ndim == 0 or arr.shape[-1] not in (3, 4):
        raise ValueError(f"Pixel buffer must end in 3 (RGB) or 4 (RGBA) channels, got shape {arr.shape}")

    if arr.dtype != np.uint8:
        arr = np.clip(np.rint(arr.astype(np.float64)), 0, 255).astype(np.uint8)

    flat = arr.reshape(-1, arr.shape[-1])
    rgb = flat[:, :3]
    if flat.shape[1] == 4:
        valid = flat[:, 3] >= alpha_threshold
    else:
        valid = np.ones(flat.shape[0], dtype=bool)
    return rgb, valid


def gray_world_white_balance(rgb: np.ndarray) -> np.ndarray:
    """
    Gray-world white balance.

    Scales each channel so its mean matches the mean of the three channel
    means. Channel means and the gray level are floored at 1.

    Args:
        rgb: (N, 3) uint8 array

    Returns:
        New (N, 3) uint8 array; the input is left untouched
    """
    rgb = np.asarray(rgb)
    if rgb.shape[0] == 0:
        return rgb.astype(np.uint8, copy=True)

    means = rgb.astype(np.float64).mean(axis=0)
    gray = max(float(means.mean()), 1.0)
    gains = gray / np.maximum(means, 1.0)

    balanced = np.rint(rgb.astype(np.float64) * gains)
    return np.clip(balanced, 0, 255).astype(np.uint8)


def rgb_to_hsv(rgb: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Convert (N, 3) uint8 RGB to hue degrees [0, 360), saturation and value in [0, 1].

    Hue is 0 for achromatic pixels.
    """
    rgb = np.asarray(rgb)
    if rgb.shape[0] == 0:
        empty = np.zeros(0, dtype=np.float64)
        return empty, empty.copy(), empty.copy()

    # OpenCV gives hue in degrees for float32 input scaled to [0, 1]
    img = (rgb.astype(np.float32) / 255.0).reshape(1, -1, 3)
    hsv = cv2.cvtColor(img, cv2.COLOR_RGB2HSV).reshape(-1, 3).astype(np.float64)

    hue = np.mod(hsv[:, 0], 360.0)
    sat = hsv[:, 1]
    val = hsv[:, 2]
    hue[sat <= 0] = 0.0
    return hue, sat, val


def circular_mean_deg(values: Sequence[float], weights: Optional[Sequence[float]] = None) -> float:
    """
    Weighted circular mean of angles in degrees.

    Args:
        values: Angles in degrees (any range)
        weights: Optional non-negative weights, one per angle

    Returns:
        Mean angle in [0, 360), or NaN when the resultant vector vanishes
    """
    angles = np.asarray(values, dtype=np.float64)
    if angles.size == 0:
        return float('nan')

    if weights is None:
        w = np.ones_like(angles)
    else:
        w = np.asarray(weights, dtype=np.float64)
        if w.shape != angles.shape:
            raise ValueError("weights must match values in shape")

    rad = np.deg2rad(angles)
    x = float(np.sum(w * np.cos(rad)))
    y = float(np.sum(w * np.sin(rad)))

    total = float(np.sum(np.abs(w)))
    resultant = math.hypot(x, y)
    if resultant == 0.0 or resultant <= DEGENERATE_RESULTANT * total:
        return float('nan')

    return normalize_hue(math.degrees(math.atan2(y, x)))


def sample_hue(pixels: PixelBuffer,
               white_balance: bool = False,
               config: EstimationConfig = DEFAULT_CONFIG) -> HueEstimate:
    """
    Reduce a pixel buffer to a single hue estimate.

    Args:
        pixels: RGB or RGBA pixels, any leading shape
        white_balance: Apply gray-world white balance first
        config: Thresholds and minimum pixel count

    Returns:
        HueEstimate; the mean is NaN when fewer than
        ``config.min_sample_pixels`` pixels qualify or the mean is degenerate
    """
    rgb, valid = _split_channels(pixels, config.alpha_threshold)

    if white_balance:
        rgb = gray_world_white_balance(rgb)

    rgb = rgb[valid]
    hue, sat, val = rgb_to_hsv(rgb)

    mask = (sat > config.saturation_threshold) & (val > config.value_threshold)
    count = int(np.count_nonzero(mask))

    if count < config.min_sample_pixels:
        return HueEstimate.undefined(count)

    mean_hue = circular_mean_deg(hue[mask], val[mask])
    if math.isnan(mean_hue):
        logger.debug("Degenerate circular mean over %d pixels", count)
    return HueEstimate(mean_hue_deg=mean_hue, sample_count=count)


class ColorSampler:
    """Stateless sampler bound to one configuration."""

    def __init__(self, config: Optional[EstimationConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def sample(self, pixels: PixelBuffer, white_balance: Optional[bool] = None) -> HueEstimate:
        if white_balance is None:
            white_balance = self.config.white_balance
        return sample_hue(pixels, white_balance=white_balance, config=self.config)
