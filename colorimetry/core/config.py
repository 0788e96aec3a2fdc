"""
Configuration for hue sampling, calibration mapping and the estimation loop.
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Dict, Any, Union
import hashlib
import json

from .data_structures import PH_MIN, PH_MAX
from .exceptions import ConfigurationError


INTERPOLATION_POLICIES = ('circular', 'ordered_scan')


@dataclass
class EstimationConfig:
    """Tunable parameters of the color-to-pH engine."""

    # Pixel gating
    saturation_threshold: float = 0.18
    value_threshold: float = 0.18
    alpha_threshold: int = 128

    # Sample counts
    min_sample_pixels: int = 5    # below this the sampler gives up
    min_report_pixels: int = 20   # below this the session reports "no estimate"

    # Region of interest (square, centered)
    roi_size: int = 64
    roi_min: int = 24
    roi_max: int = 256
    roi_step: int = 16

    # pH scale
    ph_min: float = 1.0
    ph_max: float = 14.0
    neutral_ph: float = 7.0

    white_balance: bool = False
    storage_key: str = "ph_manual_calibration_v1"
    interpolation: str = "circular"

    def to_hash(self) -> str:
        """Generate unique hash for configuration."""
        config_str = json.dumps(self.to_dict(), sort_keys=True, default=str)
        return hashlib.md5(config_str.encode()).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EstimationConfig':
        """
        Build a configuration from a mapping.

        Unknown keys are ignored so that older/newer config files still load.
        """
        known = {f.name for f in fields(cls)}
        config = cls(**{k: v for k, v in data.items() if k in known})
        config.validate()
        return config

    @classmethod
    def from_json_file(cls, filepath: Union[str, Path]) -> 'EstimationConfig':
        """Load configuration from a JSON file."""
        filepath = Path(filepath)
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not read config file {filepath}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {filepath} must contain a JSON object")
        return cls.from_dict(data)

    def validate(self) -> None:
        """Validate configuration parameters."""
        for name in ('saturation_threshold', 'value_threshold'):
            value = getattr(self, name)
            if not 0.0 <= value < 1.0:
                raise ConfigurationError(f"{name} must be in [0, 1)")
        if not 0 <= self.alpha_threshold <= 255:
            raise ConfigurationError("alpha_threshold must be in [0, 255]")
        if self.min_sample_pixels < 1:
            raise ConfigurationError("min_sample_pixels must be at least 1")
        if self.min_report_pixels < self.min_sample_pixels:
            raise ConfigurationError("min_report_pixels must not be below min_sample_pixels")
        if not 1 <= self.roi_min <= self.roi_max:
            raise ConfigurationError("roi_min must be positive and not above roi_max")
        if self.roi_step < 1:
            raise ConfigurationError("roi_step must be positive")
        if self.ph_min >= self.ph_max:
            raise ConfigurationError("ph_min must be below ph_max")
        if self.ph_min < PH_MIN or self.ph_max > PH_MAX:
            raise ConfigurationError(f"pH range must lie within [{PH_MIN:g}, {PH_MAX:g}]")
        if not self.ph_min <= self.neutral_ph <= self.ph_max:
            raise ConfigurationError("neutral_ph must lie within [ph_min, ph_max]")
        if not self.storage_key:
            raise ConfigurationError("storage_key must not be empty")
        if self.interpolation not in INTERPOLATION_POLICIES:
            raise ConfigurationError(
                f"interpolation must be one of {INTERPOLATION_POLICIES}, got {self.interpolation!r}"
            )

    def clamp_ph(self, value: float) -> float:
        return max(self.ph_min, min(self.ph_max, value))

    def clamp_roi(self, size: int) -> int:
        return max(self.roi_min, min(self.roi_max, int(size)))


DEFAULT_CONFIG = EstimationConfig()
