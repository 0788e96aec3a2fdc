"""
Calibration asset sources.

Assets are JSON arrays of ``{"hue", "pH"}`` objects, one file per curve
name (``default.json``, ``red_cabbage.json``, ...).
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from ..core.exceptions import AssetLoadError
from ..core.interfaces import ICalibrationAssetSource

logger = logging.getLogger(__name__)

BUNDLED_ASSET_DIR = Path(__file__).resolve().parent.parent / 'assets'


class JsonAssetSource(ICalibrationAssetSource):
    """Reads ``<name>.json`` files from a directory."""

    def __init__(self, asset_dir: Optional[Union[str, Path]] = None, encoding: str = 'utf-8'):
        self.asset_dir = Path(asset_dir) if asset_dir else BUNDLED_ASSET_DIR
        self.encoding = encoding

    def fetch(self, name: str) -> Any:
        path = self.asset_dir / f"{name}.json"
        try:
            with open(path, 'r', encoding=self.encoding) as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise AssetLoadError(f"Calibration asset not found: {path}") from e
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise AssetLoadError(f"Could not load calibration asset {path}: {e}") from e


class DictAssetSource(ICalibrationAssetSource):
    """In-memory asset source, mostly for embedding curves in code and tests."""

    def __init__(self, assets: Dict[str, Any]):
        self.assets = dict(assets)

    def fetch(self, name: str) -> Any:
        if name not in self.assets:
            raise AssetLoadError(f"Calibration asset not found: {name}")
        return self.assets[name]


def load_calibration_assets(service, source: ICalibrationAssetSource, names: Iterable[str]) -> Dict[str, int]:
    """
    Load named curves from an asset source into a calibration service.

    Failures are logged and leave the affected curve unchanged; they never
    propagate.

    Returns:
        Mapping of curve name to number of points loaded (0 on failure)
    """
    loaded = {}
    for name in names:
        try:
            payload = source.fetch(name)
            if not isinstance(payload, list):
                raise AssetLoadError(f"Calibration asset {name!r} is not a JSON array")
        except AssetLoadError as e:
            logger.warning("Calibration asset %s unavailable: %s", name, e)
            loaded[name] = 0
            continue

        curve = service.replace_preset(name, payload)
        loaded[name] = len(curve)
        logger.info("Loaded calibration asset %s (%d points)", name, len(curve))
    return loaded
