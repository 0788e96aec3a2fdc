"""
Import/export of calibration curves.

The portable format is a JSON array of ``{"hue": <deg>, "pH": <value>}``
objects. Extra fields are ignored on import.
"""

import json
import logging
from typing import Any, Union

from ..core.data_structures import CalibrationCurve
from ..core.exceptions import SnapshotParseError

logger = logging.getLogger(__name__)

EXPORT_FILENAME = 'ph_manual_calibration.json'


def export_snapshot(curve: CalibrationCurve) -> bytes:
    """Serialize a curve to the portable JSON format."""
    return json.dumps(curve.to_records(), indent=2).encode('utf-8')


def _decode(data: Union[bytes, bytearray, str]) -> Any:
    if isinstance(data, (bytes, bytearray)):
        try:
            text = bytes(data).decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise SnapshotParseError(f"Calibration file is not UTF-8 text: {e}") from e
    elif isinstance(data, str):
        text = data
    else:
        raise SnapshotParseError(f"Unsupported snapshot payload type: {type(data).__name__}")

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotParseError(f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})") from e


def parse_snapshot(data: Union[bytes, bytearray, str], source: str = 'manual') -> CalibrationCurve:
    """
    Parse a calibration file.

    Malformed entries are dropped. An empty array is a valid empty curve.

    Args:
        data: Raw file contents
        source: Name given to the resulting curve

    Returns:
        The parsed curve

    Raises:
        SnapshotParseError: not JSON, not an array, or a non-empty array
            without a single valid entry
    """
    payload = _decode(data)
    if not isinstance(payload, list):
        raise SnapshotParseError(f"Calibration file must contain a JSON array, got {type(payload).__name__}")

    curve, errors = CalibrationCurve.from_records(source, payload)
    if payload and not curve.points:
        raise SnapshotParseError(
            f"No valid calibration entries (each needs numeric 'hue' and 'pH'): {errors[:3]}"
        )
    if errors:
        logger.warning("Dropped %d malformed calibration entries: %s", len(errors), errors)
    return curve


def curve_to_csv(curve: CalibrationCurve) -> str:
    """Point table (sorted by pH) as CSV text."""
    return curve.to_frame().to_csv(index=False, float_format='%.4f')

