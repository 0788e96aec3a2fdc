"""
Angle helpers for the hue ring [0, 360).
"""

import math


def normalize_hue(hue_deg: float) -> float:
    """Wrap a hue angle into [0, 360)."""
    h = math.fmod(hue_deg, 360.0)
    if h < 0:
        h += 360.0
    # fmod of a tiny negative number can round up to exactly 360
    return 0.0 if h >= 360.0 else h


def hue_distance(a: float, b: float) -> float:
    """Length of the short arc between two hues, in [0, 180]."""
    d = math.fmod(abs(a - b), 360.0)
    return 360.0 - d if d > 180.0 else d


def signed_arc(target: float, reference: float) -> float:
    """
    Signed short-arc offset from ``reference`` to ``target``.

    Positive means counter-clockwise (increasing hue). The result lies in
    (-180, 180].
    """
    x = normalize_hue(target - reference)
    if x > 180.0:
        x -= 360.0
    return x
