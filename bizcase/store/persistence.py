"""Key/value persistence for the state store.

Supports two adapters behind one port:
- in-memory, for tests and embedding
- local filesystem, one ``<key>.json`` file per key under ``BIZCASE_STORAGE_DIR``

Storage failures are logged and reported as a missing value / False; they
never propagate into the state store.
"""

from __future__ import annotations

import abc
import logging
import re
from pathlib import Path
from typing import Dict, Optional

from bizcase.config.settings import Settings

logger = logging.getLogger(__name__)

BUSINESS_DATA_KEY = "bizcaseland_business_data"
MARKET_DATA_KEY = "bizcaseland_market_data"
ACTIVE_MODE_KEY = "bizcaseland_active_mode"
PROJECTS_KEY = "bizcaseland_projects"
CURRENT_PROJECT_KEY = "bizcaseland_current_project"

ALL_KEYS = (
    BUSINESS_DATA_KEY,
    MARKET_DATA_KEY,
    ACTIVE_MODE_KEY,
    PROJECTS_KEY,
    CURRENT_PROJECT_KEY,
)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class PersistencePort(abc.ABC):
    """Load / save / remove serialized values by key.

    Subclasses must implement:
    - ``load``: stored string for a key, or None
    - ``save``: store a string, True on success
    - ``remove``: delete a key, True if something was removed
    """

    @abc.abstractmethod
    def load(self, key: str) -> Optional[str]:
        ...

    @abc.abstractmethod
    def save(self, key: str, value: str) -> bool:
        ...

    @abc.abstractmethod
    def remove(self, key: str) -> bool:
        ...


class InMemoryPersistence(PersistencePort):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})

    def load(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def save(self, key: str, value: str) -> bool:
        self.values[key] = value
        return True

    def remove(self, key: str) -> bool:
        return self.values.pop(key, None) is not None


class LocalFilePersistence(PersistencePort):
    """One JSON file per key in a local directory."""

    def __init__(self, storage_dir: Optional[Path] = None):
        self.storage_dir = Path(storage_dir) if storage_dir else Settings.from_env().storage_dir

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.storage_dir / f"{key}.json"

    def load(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

    def save(self, key: str, value: str) -> bool:
        path = self._path(key)
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(value, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to write {path}: {e}")
            return False
        logger.debug(f"Saved {key} to {path}")
        return True

    def remove(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            logger.warning(f"Failed to delete {path}: {e}")
            return False
        return True
