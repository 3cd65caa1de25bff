"""
Persistence - Key-value storage of repository sources and installed ids.

Two independent records are kept:
    sources        JSON array of repository sources with nested packages
    installed-ids  JSON array of installed package ids

Both are read once at startup and rewritten on every change. Corrupt
records never stop the store from starting; they fall back to the
built-in default source or to an empty installed set.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from utils.atomic_write import atomic_write_text

from .models import RepositorySource, default_source

logger = logging.getLogger(__name__)

SOURCES_KEY = "sources"
INSTALLED_KEY = "installed-ids"


class KeyValueStore(ABC):
    """Abstract string key-value storage."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        pass


class MemoryKeyValueStore(KeyValueStore):
    """In-process storage, used for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileKeyValueStore(KeyValueStore):
    """
    One file per key inside a data directory.

    Values are written atomically, so an interrupted write leaves the
    previous value in place.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        atomic_write_text(self.path_for(key), value)


class PersistenceGateway:
    """Loads and saves the store's state through a KeyValueStore."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def _read_json(self, key: str):
        try:
            raw = self.kv.get(key)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read '{key}': {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning(f"Stored '{key}' is corrupt, ignoring it: {e}")
            return None

    def _write_json(self, key: str, data) -> bool:
        try:
            self.kv.set(key, json.dumps(data))
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save '{key}': {e}")
            return False

    def load_sources(self) -> List[RepositorySource]:
        """
        Load the stored sources.

        Returns:
            The stored sources, or the built-in default source when nothing
            usable is stored.
        """
        data = self._read_json(SOURCES_KEY)
        if not isinstance(data, list):
            if data is not None:
                logger.warning("Stored sources are not a list, using defaults")
            return [default_source()]

        sources = []
        for entry in data:
            try:
                sources.append(RepositorySource.from_dict(entry))
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping unreadable stored source: {e}")

        logger.info(f"Loaded {len(sources)} sources")
        return sources

    def save_sources(self, sources: Sequence[RepositorySource]) -> bool:
        return self._write_json(SOURCES_KEY, [source.to_dict() for source in sources])

    def load_installed_ids(self) -> List[str]:
        """Load installed package ids; anything unusable counts as empty."""
        data = self._read_json(INSTALLED_KEY)
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, str)]

    def save_installed_ids(self, ids: Iterable[str]) -> bool:
        return self._write_json(INSTALLED_KEY, list(ids))
