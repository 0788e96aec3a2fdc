"""
Core data structures for hue estimation and calibration curves.

Provides immutable calibration points, curve containers and the result
objects handed to the presentation layer.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Any, Iterable, Mapping
import math
import numpy as np
import pandas as pd

from .angles import normalize_hue
from .exceptions import DataValidationError


PH_MIN = 1.0
PH_MAX = 14.0

DEFAULT_SOURCE = 'default'
MANUAL_SOURCE = 'manual'


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _coerce_float(value: Any, name: str) -> float:
    """Best-effort numeric coercion, mirroring how JSON numbers/strings are read."""
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8', errors='replace')
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise DataValidationError(f"Field '{name}' is not numeric: {value!r}") from e
    if not math.isfinite(number):
        raise DataValidationError(f"Field '{name}' is not finite: {value!r}")
    return number


@dataclass
class HueEstimate:
    """Result of sampling one ROI: circular mean hue and qualifying pixel count."""

    mean_hue_deg: float
    sample_count: int

    @property
    def is_defined(self) -> bool:
        return not math.isnan(self.mean_hue_deg)

    @classmethod
    def undefined(cls, sample_count: int = 0) -> 'HueEstimate':
        return cls(mean_hue_deg=float('nan'), sample_count=sample_count)

    def __repr__(self) -> str:
        hue = f"{self.mean_hue_deg:.1f}deg" if self.is_defined else "undefined"
        return f"HueEstimate(hue={hue}, count={self.sample_count})"


@dataclass(frozen=True)
class CalibrationPoint:
    """
    One (hue, pH) control point.

    Hue is wrapped into [0, 360) and pH clamped into [1, 14] on creation.
    Points are immutable; replace a point by removing and re-adding it.
    """

    hue_deg: float
    ph: float

    def __post_init__(self):
        object.__setattr__(self, 'hue_deg', normalize_hue(float(self.hue_deg)))
        object.__setattr__(self, 'ph', clamp(float(self.ph), PH_MIN, PH_MAX))

    @classmethod
    def from_mapping(cls, record: Any) -> 'CalibrationPoint':
        """
        Build a point from a ``{"hue": ..., "pH": ...}`` record.

        Extra keys are ignored. Raises DataValidationError when the record is
        not a mapping or a required field is missing or non-numeric.
        """
        if not isinstance(record, Mapping):
            raise DataValidationError(f"Calibration entry must be an object, got {type(record).__name__}")
        if 'hue' not in record or 'pH' not in record:
            raise DataValidationError("Calibration entry needs both 'hue' and 'pH'")

        return cls(
            hue_deg=_coerce_float(record['hue'], 'hue'),
            ph=_coerce_float(record['pH'], 'pH'),
        )

    def to_dict(self) -> Dict[str, float]:
        return {'hue': self.hue_deg, 'pH': self.ph}


@dataclass
class CalibrationCurve:
    """Container for the control points of one named calibration source."""

    source: str
    points: Tuple[CalibrationPoint, ...] = field(default_factory=tuple)

    def __post_init__(self):
        self.points = tuple(self.points)

    @classmethod
    def from_records(cls, source: str, records: Iterable[Any]) -> Tuple['CalibrationCurve', List[str]]:
        """
        Build a curve from raw records, dropping malformed entries.

        Returns:
            The curve and a list of error messages for the dropped entries
        """
        points = []
        errors = []
        for i, record in enumerate(records):
            try:
                points.append(CalibrationPoint.from_mapping(record))
            except DataValidationError as e:
                errors.append(f"entry {i}: {e}")
        return cls(source=source, points=tuple(points)), errors

    @property
    def is_usable(self) -> bool:
        """A curve can interpolate only with at least two points."""
        return len(self.points) >= 2

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    def sorted_by_hue(self) -> List[CalibrationPoint]:
        return sorted(self.points, key=lambda p: p.hue_deg)

    def ph_values(self) -> np.ndarray:
        return np.array([p.ph for p in self.points], dtype=np.float64)

    def to_records(self) -> List[Dict[str, float]]:
        return [p.to_dict() for p in self.points]

    def to_frame(self) -> pd.DataFrame:
        """Point table sorted by pH, as shown in point listings."""
        df = pd.DataFrame(self.to_records(), columns=['hue', 'pH'])
        return df.sort_values(by='pH', kind='stable').reset_index(drop=True)

    def format_points(self) -> str:
        """Human-readable listing, one point per line, sorted by pH."""
        if not self.points:
            return f"No {self.source} points yet."
        df = self.to_frame()
        return "\n".join(
            f"pH {row.pH:.2f}  <-  hue {row.hue:.2f} deg" for row in df.itertuples(index=False)
        )

    def __repr__(self) -> str:
        return f"CalibrationCurve(source={self.source}, points={len(self.points)})"


@dataclass
class EstimationResult:
    """One reported estimate. ``ph`` is None for an inconclusive sample."""

    ph: Optional[float]
    mean_hue_deg: Optional[float]
    sample_count: int
    source: Optional[str] = None

    @property
    def is_conclusive(self) -> bool:
        return self.ph is not None

    @classmethod
    def inconclusive(cls, estimate: Optional[HueEstimate] = None) -> 'EstimationResult':
        count = estimate.sample_count if estimate is not None else 0
        return cls(ph=None, mean_hue_deg=None, sample_count=count)

    def to_dict(self) -> Dict[str, Any]:
        """Result shape consumed by the presentation layer."""
        return {
            'pH': self.ph,
            'meanHueDegrees': self.mean_hue_deg,
            'sampleCount': self.sample_count,
        }

    def summary_string(self) -> str:
        if not self.is_conclusive:
            return "pH: --"
        return f"pH ~ {self.ph:.2f}"

    def debug_string(self) -> str:
        if self.mean_hue_deg is None:
            return "Hue: -- (too few pixels)"
        return f"Hue: {self.mean_hue_deg:.1f} deg   ({self.sample_count} px)"
