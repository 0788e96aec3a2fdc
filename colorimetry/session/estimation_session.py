"""
Estimation session: the per-tick loop that turns ROI pixels into pH results.

The session is driven by an external scheduler (a Qt timer, a Streamlit
rerun, a test) that calls ``tick()`` once per frame. Every tick runs to
completion synchronously and never raises.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..core.config import EstimationConfig, DEFAULT_CONFIG
from ..core.data_structures import (
    CalibrationPoint, EstimationResult, HueEstimate, MANUAL_SOURCE,
)
from ..core.exceptions import ValidationError
from ..core.interfaces import IFrameSource
from ..curves.mapper import HueToPhMapper
from ..curves.store import CalibrationService
from ..data.frame_source import centered_roi
from ..sampling.color_sampler import ColorSampler

logger = logging.getLogger(__name__)

ResultListener = Callable[[EstimationResult], None]


class SessionState(str, Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    PAUSED = 'paused'


class EstimationSession:
    """Orchestrates frame source, sampler, mapper and calibration store."""

    def __init__(self,
                 frame_source: IFrameSource,
                 calibration: CalibrationService,
                 config: Optional[EstimationConfig] = None):
        self.frame_source = frame_source
        self.calibration = calibration
        self.config = config or calibration.config or DEFAULT_CONFIG
        self.sampler = ColorSampler(self.config)
        self.mapper = HueToPhMapper(self.config.interpolation, self.config.neutral_ph)

        self.state = SessionState.IDLE
        self.white_balance = self.config.white_balance
        self._roi_size = self.config.clamp_roi(self.config.roi_size)
        self._listeners: List[ResultListener] = []
        self.last_result: Optional[EstimationResult] = None

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self.state is SessionState.IDLE:
            self.state = SessionState.RUNNING
            logger.info("Estimation session started")

    def toggle(self) -> SessionState:
        """Pause a running session or resume a paused one."""
        if self.state is SessionState.RUNNING:
            self.state = SessionState.PAUSED
        elif self.state is SessionState.PAUSED:
            self.state = SessionState.RUNNING
        return self.state

    @property
    def is_running(self) -> bool:
        return self.state is SessionState.RUNNING

    def add_listener(self, callback: ResultListener) -> None:
        self._listeners.append(callback)

    # ------------------------------------------------------------------
    # ROI
    # ------------------------------------------------------------------

    @property
    def roi_size(self) -> int:
        return self._roi_size

    @roi_size.setter
    def roi_size(self, size: int) -> None:
        self._roi_size = self.config.clamp_roi(size)

    def grow_roi(self) -> int:
        self.roi_size = self._roi_size + self.config.roi_step
        return self._roi_size

    def shrink_roi(self) -> int:
        self.roi_size = self._roi_size - self.config.roi_step
        return self._roi_size

    def current_roi(self) -> Tuple[int, int, int, int]:
        """(x0, y0, width, height) of the ROI for the current frame."""
        width, height = self.frame_source.frame_size()
        return centered_roi(width, height, self._roi_size)

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def sample_roi(self) -> HueEstimate:
        """Read the ROI from the frame source and reduce it to a hue."""
        x0, y0, width, height = self.current_roi()
        if width <= 0 or height <= 0:
            return HueEstimate.undefined(0)
        pixels = self.frame_source.read_region(x0, y0, width, height)
        return self.sampler.sample(pixels, white_balance=self.white_balance)

    def _is_reportable(self, estimate: HueEstimate) -> bool:
        return estimate.is_defined and estimate.sample_count >= self.config.min_report_pixels

    def evaluate(self) -> EstimationResult:
        """One sample + map pass, independent of the session state."""
        try:
            estimate = self.sample_roi()
        except Exception as e:
            logger.debug("ROI sampling failed: %s", e)
            return EstimationResult.inconclusive()

        if not self._is_reportable(estimate):
            return EstimationResult.inconclusive(estimate)

        curve = self.calibration.active_curve()
        ph = self.config.clamp_ph(self.mapper(estimate.mean_hue_deg, curve))
        return EstimationResult(
            ph=ph,
            mean_hue_deg=estimate.mean_hue_deg,
            sample_count=estimate.sample_count,
            source=curve.source,
        )

    def tick(self) -> Optional[EstimationResult]:
        """
        Process the current frame if the session is running.

        Returns:
            The emitted result, or None when idle or paused
        """
        if not self.is_running:
            return None

        result = self.evaluate()
        self.last_result = result
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:
                logger.exception("Result listener failed")
        return result

    # ------------------------------------------------------------------
    # Calibration capture
    # ------------------------------------------------------------------

    def capture_calibration_point(self, ph: float) -> CalibrationPoint:
        """
        Sample the ROI now and store it as a manual calibration point.

        Raises:
            ValidationError: too few valid pixels, or pH outside the configured range
            StorageError: the point could not be persisted
        """
        try:
            estimate = self.sample_roi()
        except Exception as e:
            logger.warning("Capture failed to read the ROI: %s", e)
            raise ValidationError("No frame available to capture from.") from e

        if not self._is_reportable(estimate):
            raise ValidationError("Not enough valid pixels in ROI. Try adjusting ROI or lighting.")

        lo, hi = self.config.ph_min, self.config.ph_max
        try:
            value = float(ph)
        except (TypeError, ValueError):
            raise ValidationError(f"Enter pH in [{lo:g},{hi:g}].") from None
        if not lo <= value <= hi:
            raise ValidationError(f"Enter pH in [{lo:g},{hi:g}].")

        point = self.calibration.add_manual_point(estimate.mean_hue_deg, value)
        self.calibration.set_mode(MANUAL_SOURCE)
        return point
