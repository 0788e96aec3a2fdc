"""
Sampling module: pixel buffers in, hue estimates out.
"""

from .color_sampler import (
    ColorSampler,
    sample_hue,
    circular_mean_deg,
    gray_world_white_balance,
    rgb_to_hsv,
)

__all__ = [
    'ColorSampler',
    'sample_hue',
    'circular_mean_deg',
    'gray_world_white_balance',
    'rgb_to_hsv',
]
