"""
Hue-to-pH interpolation along a calibration curve.

Two interpolation policies are available:

- ``circular`` (default): nearest control point on the hue ring plus the
  neighbor on the query's side of it, interpolated along the short arc.
  Handles wraparound near 0/360 and unsorted curves.
- ``ordered_scan``: linear scan in hue order for the first point above the
  query. Does not wrap; kept for comparison with older calibrations.
"""

import math
from enum import Enum
from typing import Sequence, Union

from ..core.angles import normalize_hue, hue_distance, signed_arc
from ..core.data_structures import CalibrationCurve, CalibrationPoint


NEUTRAL_PH = 7.0
DEGENERATE_ARC_DEG = 1e-6


class InterpolationPolicy(str, Enum):
    CIRCULAR = 'circular'
    ORDERED_SCAN = 'ordered_scan'


CurveLike = Union[CalibrationCurve, Sequence[CalibrationPoint]]


def _points_by_hue(curve: CurveLike):
    if isinstance(curve, CalibrationCurve):
        return curve.sorted_by_hue()
    return sorted(curve, key=lambda p: p.hue_deg)


def _lerp(p0: float, p1: float, t: float) -> float:
    return p0 + t * (p1 - p0)


def _circular_interpolate(hue: float, points: Sequence[CalibrationPoint]) -> float:
    n = len(points)

    # Nearest point; strict comparison keeps the first one in hue order on ties
    best_idx = 0
    best_dist = float('inf')
    for i, p in enumerate(points):
        d = hue_distance(hue, p.hue_deg)
        if d < best_dist:
            best_dist = d
            best_idx = i

    nearest = points[best_idx]
    offset = signed_arc(hue, nearest.hue_deg)
    if offset == 0.0:
        return nearest.ph

    # Neighbor on the same side of the nearest point as the query
    step = 1 if offset > 0 else -1
    neighbor = points[(best_idx + step) % n]

    direction = signed_arc(neighbor.hue_deg, nearest.hue_deg)
    if abs(direction) < DEGENERATE_ARC_DEG:
        return nearest.ph
    if direction == 180.0:
        # Both ways round are equally short; follow the query
        direction = math.copysign(180.0, offset)

    # The short arc to the neighbor points away from the query when the
    # curve leaves a gap wider than 180 degrees; the query is off the curve.
    if (offset > 0) != (direction > 0):
        return nearest.ph

    t = min(max(offset / direction, 0.0), 1.0)
    return _lerp(nearest.ph, neighbor.ph, t)


def _ordered_scan_interpolate(hue: float, points: Sequence[CalibrationPoint]) -> float:
    if hue <= points[0].hue_deg:
        return points[0].ph

    for i in range(1, len(points)):
        upper = points[i]
        if upper.hue_deg > hue:
            lower = points[i - 1]
            span = upper.hue_deg - lower.hue_deg
            if span < DEGENERATE_ARC_DEG:
                return upper.ph
            return _lerp(lower.ph, upper.ph, (hue - lower.hue_deg) / span)

    return points[-1].ph


def map_hue_to_ph(hue_deg: float,
                  curve: CurveLike,
                  policy: Union[InterpolationPolicy, str] = InterpolationPolicy.CIRCULAR,
                  neutral_ph: float = NEUTRAL_PH) -> float:
    """
    Estimate pH for a hue using a calibration curve.

    Args:
        hue_deg: Query hue in degrees (any range, wrapped internally)
        curve: Calibration curve or sequence of points, in any order
        policy: Interpolation policy
        neutral_ph: Result for a curve without points

    Returns:
        Interpolated pH. Not clamped; ``neutral_ph`` for an empty curve and
        the single point's pH for a one-point curve.
    """
    policy = InterpolationPolicy(policy)
    points = _points_by_hue(curve)

    if not points:
        return neutral_ph
    if len(points) == 1:
        return points[0].ph

    hue = normalize_hue(hue_deg)
    if policy is InterpolationPolicy.ORDERED_SCAN:
        return _ordered_scan_interpolate(hue, points)
    return _circular_interpolate(hue, points)


class HueToPhMapper:
    """Mapper bound to one interpolation policy and neutral pH."""

    def __init__(self,
                 policy: Union[InterpolationPolicy, str] = InterpolationPolicy.CIRCULAR,
                 neutral_ph: float = NEUTRAL_PH):
        self.policy = InterpolationPolicy(policy)
        self.neutral_ph = neutral_ph

    def __call__(self, hue_deg: float, curve: CurveLike) -> float:
        return map_hue_to_ph(hue_deg, curve, self.policy, self.neutral_ph)
