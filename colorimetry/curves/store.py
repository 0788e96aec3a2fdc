"""
Calibration store: named curves, active-mode selection and persistence.

``CalibrationService`` owns every calibration curve (``default``, ``manual``
and any named presets) plus the active-mode selector. Only the manual curve
changes at runtime; it is persisted through an injected key-value store.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core.config import EstimationConfig, DEFAULT_CONFIG
from ..core.data_structures import (
    CalibrationCurve, CalibrationPoint, DEFAULT_SOURCE, MANUAL_SOURCE,
)
from ..core.exceptions import ValidationError, StorageError, UnknownCurveError
from ..core.interfaces import IKeyValueStore
from .presets import default_curve
from .snapshot import export_snapshot, parse_snapshot

logger = logging.getLogger(__name__)


class CalibrationService:
    """Owns calibration curves and the active-mode selection."""

    def __init__(self,
                 storage: IKeyValueStore,
                 config: Optional[EstimationConfig] = None,
                 presets: Iterable[str] = (),
                 default: Optional[CalibrationCurve] = None):
        """
        Initialize calibration service.

        Args:
            storage: Durable key-value store for the manual curve
            config: Engine configuration (storage key, pH bounds)
            presets: Names of additional read-only curves, loaded later
            default: Default curve; the built-in universal indicator if omitted
        """
        self.storage = storage
        self.config = config or DEFAULT_CONFIG
        self._builtin_default = default or default_curve()

        self._curves: Dict[str, CalibrationCurve] = {
            DEFAULT_SOURCE: CalibrationCurve(DEFAULT_SOURCE, self._builtin_default.points),
            MANUAL_SOURCE: CalibrationCurve(MANUAL_SOURCE),
        }
        for name in presets:
            self._register(name)

        self._active_mode = DEFAULT_SOURCE
        self.restore()

    # ------------------------------------------------------------------
    # Curves
    # ------------------------------------------------------------------

    def _register(self, name: str) -> None:
        if name in (DEFAULT_SOURCE, MANUAL_SOURCE):
            raise ValueError(f"'{name}' is a reserved calibration source name")
        self._curves.setdefault(name, CalibrationCurve(name))

    def _curve(self, source: str) -> CalibrationCurve:
        try:
            return self._curves[source]
        except KeyError:
            raise UnknownCurveError(f"Unknown calibration source: {source!r}") from None

    def sources(self) -> List[str]:
        """Known curve names, default and manual first."""
        return list(self._curves)

    def preset_names(self) -> List[str]:
        return [name for name in self._curves if name not in (DEFAULT_SOURCE, MANUAL_SOURCE)]

    def normalized_curve(self, source: str) -> CalibrationCurve:
        """
        Copy of a curve with hues in [0, 360) and pH in [1, 14].

        The stored curve is never handed out directly.
        """
        curve = self._curve(source)
        return CalibrationCurve(
            source=source,
            points=tuple(CalibrationPoint(p.hue_deg, p.ph) for p in curve.points),
        )

    @property
    def manual_curve(self) -> CalibrationCurve:
        return self.normalized_curve(MANUAL_SOURCE)

    # ------------------------------------------------------------------
    # Active mode
    # ------------------------------------------------------------------

    @property
    def active_mode(self) -> str:
        return self._active_mode

    def set_mode(self, source: str) -> str:
        """
        Select the active curve.

        Selecting a curve with fewer than 2 points falls back to default.

        Returns:
            The mode actually applied
        """
        curve = self._curve(source)
        if source != DEFAULT_SOURCE and not curve.is_usable:
            logger.info(
                "Calibration '%s' has %d point(s); using default instead", source, len(curve)
            )
            source = DEFAULT_SOURCE
        self._active_mode = source
        return source

    def active_curve(self) -> CalibrationCurve:
        """Normalized copy of the active curve, default if it is no longer usable."""
        curve = self._curves.get(self._active_mode)
        if curve is None or not curve.is_usable:
            return self.normalized_curve(DEFAULT_SOURCE)
        return self.normalized_curve(self._active_mode)

    # ------------------------------------------------------------------
    # Manual curve mutation
    # ------------------------------------------------------------------

    def _validate_ph(self, ph: Any) -> float:
        try:
            value = float(ph)
        except (TypeError, ValueError):
            raise ValidationError(f"pH must be a number, got {ph!r}") from None
        lo, hi = self.config.ph_min, self.config.ph_max
        if not lo <= value <= hi:
            raise ValidationError(f"Enter pH in [{lo:g}, {hi:g}] (got {ph})")
        return value

    def _commit_manual(self, points: Tuple[CalibrationPoint, ...]) -> CalibrationCurve:
        """Persist first, then swap in; a failed write leaves the store untouched."""
        curve = CalibrationCurve(MANUAL_SOURCE, points)
        self._write(curve)
        self._curves[MANUAL_SOURCE] = curve
        if self._active_mode == MANUAL_SOURCE and not curve.is_usable:
            self._active_mode = DEFAULT_SOURCE
        return curve

    def add_manual_point(self, hue_deg: float, ph: float) -> CalibrationPoint:
        """
        Append a user-captured point to the manual curve and persist it.

        Raises:
            ValidationError: pH outside the configured range or not a number
            StorageError: the store rejected the write (nothing changed)
        """
        value = self._validate_ph(ph)
        try:
            point = CalibrationPoint(hue_deg=float(hue_deg), ph=value)
        except (TypeError, ValueError):
            raise ValidationError(f"Hue must be a number, got {hue_deg!r}") from None
        self._commit_manual(self._curves[MANUAL_SOURCE].points + (point,))
        logger.info("Added manual calibration point hue=%.2f pH=%.2f", point.hue_deg, point.ph)
        return point

    def remove_manual_point(self, index: int) -> CalibrationPoint:
        """Remove one manual point by its insertion index."""
        points = list(self._curves[MANUAL_SOURCE].points)
        if not 0 <= index < len(points):
            raise IndexError(f"No manual calibration point at index {index}")
        removed = points.pop(index)
        self._commit_manual(tuple(points))
        return removed

    def reset_manual(self) -> None:
        """Clear the manual curve and persist the empty state."""
        self._commit_manual(())
        logger.info("Manual calibration cleared")

    def replace_manual(self, records: Iterable[Any]) -> CalibrationCurve:
        """Bulk replace the manual curve; malformed entries are dropped."""
        curve, errors = CalibrationCurve.from_records(MANUAL_SOURCE, records)
        if errors:
            logger.warning("Dropped %d malformed manual calibration entries", len(errors))
        return self._commit_manual(curve.points)

    def replace_preset(self, source: str, records: Iterable[Any]) -> CalibrationCurve:
        """
        Bulk replace a read-only curve (default or named preset).

        Malformed entries are dropped. The default curve keeps its built-in
        points when no valid entry remains.
        """
        if source == MANUAL_SOURCE:
            return self.replace_manual(records)

        curve, errors = CalibrationCurve.from_records(source, records)
        if errors:
            logger.warning("Dropped %d malformed entries from calibration '%s'", len(errors), source)

        if source == DEFAULT_SOURCE:
            if not curve.points:
                logger.warning("Default calibration asset is empty; keeping built-in curve")
                return self.normalized_curve(DEFAULT_SOURCE)
        else:
            self._register(source)

        self._curves[source] = curve
        if self._active_mode == source and not curve.is_usable:
            self._active_mode = DEFAULT_SOURCE
        return self.normalized_curve(source)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _write(self, curve: CalibrationCurve) -> None:
        try:
            self.storage.set(self.config.storage_key, export_snapshot(curve))
        except StorageError:
            logger.error("Could not persist manual calibration")
            raise
        except OSError as e:
            logger.error("Could not persist manual calibration: %s", e)
            raise StorageError(f"Could not persist manual calibration: {e}") from e

    def persist(self) -> None:
        """Write the manual curve to durable storage."""
        self._write(self._curves[MANUAL_SOURCE])

    def restore(self) -> CalibrationCurve:
        """
        Read the manual curve back from durable storage.

        A missing or corrupt record yields an empty curve; this never raises.
        """
        curve = CalibrationCurve(MANUAL_SOURCE)
        try:
            data = self.storage.get(self.config.storage_key)
            if data is not None:
                payload = json.loads(bytes(data).decode('utf-8'))
                if isinstance(payload, list):
                    curve, errors = CalibrationCurve.from_records(MANUAL_SOURCE, payload)
                    if errors:
                        logger.warning("Ignored %d malformed stored calibration entries", len(errors))
                else:
                    logger.warning("Stored manual calibration is not a list; starting empty")
        except Exception as e:
            logger.warning("Could not restore manual calibration, starting empty: %s", e)
            curve = CalibrationCurve(MANUAL_SOURCE)

        self._curves[MANUAL_SOURCE] = curve
        if self._active_mode == MANUAL_SOURCE and not curve.is_usable:
            self._active_mode = DEFAULT_SOURCE
        return self.normalized_curve(MANUAL_SOURCE)

    def reload_manual(self) -> str:
        """Re-read the manual curve from storage and try to make it active."""
        self.restore()
        return self.set_mode(MANUAL_SOURCE)

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def export_snapshot(self) -> bytes:
        """Manual curve in the portable JSON format."""
        return export_snapshot(self._curves[MANUAL_SOURCE])

    def import_snapshot(self, data: bytes) -> CalibrationCurve:
        """
        Replace the manual curve with the contents of a calibration file.

        On success the curve is persisted and manual mode is selected (with
        the usual fallback to default).

        Raises:
            SnapshotParseError: the file could not be parsed (nothing changed)
            StorageError: the store rejected the write (nothing changed)
        """
        parsed = parse_snapshot(data, source=MANUAL_SOURCE)
        curve = self._commit_manual(parsed.points)
        self.set_mode(MANUAL_SOURCE)
        logger.info("Imported %d manual calibration points", len(curve))
        return self.normalized_curve(MANUAL_SOURCE)
