"""
Durable key-value stores for calibration persistence.
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional

from ..core.exceptions import StorageError
from ..core.interfaces import IKeyValueStore

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r'^[A-Za-z0-9_.\-]+$')


def _check_key(key: str) -> str:
    if not isinstance(key, str) or not _KEY_PATTERN.match(key) or key in ('.', '..'):
        raise ValueError(f"Invalid storage key: {key!r}")
    return key


class MemoryKeyValueStore(IKeyValueStore):
    """In-process store; contents are lost with the process."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(_check_key(key))

    def set(self, key: str, data: bytes) -> None:
        self._data[_check_key(key)] = bytes(data)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class FileKeyValueStore(IKeyValueStore):
    """
    One file per key inside a directory.

    Writes go to a temporary file that replaces the target, so a crash never
    leaves a half-written record. Unreadable files read as absent.
    """

    def __init__(self, storage_dir: Optional[Path] = None, suffix: str = '.json'):
        """
        Initialize file store.

        Args:
            storage_dir: Directory holding the records
            suffix: File extension used for records
        """
        self.storage_dir = Path(storage_dir) if storage_dir else Path.home() / '.ph_colorimeter'
        self.suffix = suffix

    def _path_for(self, key: str) -> Path:
        return self.storage_dir / f"{_check_key(key)}{self.suffix}"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, 'rb') as f:
                return f.read()
        except OSError as e:
            logger.warning("Could not read stored record %s: %s", path, e)
            return None

    def set(self, key: str, data: bytes) -> None:
        path = self._path_for(key)
        tmp_name = None
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.storage_dir, prefix=f".{key}.", suffix='.tmp')
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Could not write {path}: {e}") from e

    def delete(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)
