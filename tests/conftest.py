"""
Shared fixtures for the colorimetry tests.
"""

import colorsys

import numpy as np
import pytest

from colorimetry.core.config import EstimationConfig
from colorimetry.curves import CalibrationService
from colorimetry.data import ArrayFrameSource, MemoryKeyValueStore


def hue_rgb(hue_deg, saturation=1.0, value=1.0):
    """8-bit RGB triple for a hue in degrees."""
    r, g, b = colorsys.hsv_to_rgb((hue_deg % 360) / 360.0, saturation, value)
    return [int(round(r * 255)), int(round(g * 255)), int(round(b * 255))]


def solid_frame(rgb, width=160, height=120):
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    frame[:, :] = rgb
    return frame


@pytest.fixture
def config():
    return EstimationConfig()


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def service(store, config):
    return CalibrationService(store, config=config, presets=['red_cabbage'])


@pytest.fixture
def frame_source():
    return ArrayFrameSource(solid_frame(hue_rgb(110)))
