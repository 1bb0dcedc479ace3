from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol

logger = logging.getLogger("routine_advisor.storage")


class KeyValueStore(Protocol):
    """String slots keyed by name, the only persistence the core relies on."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class MemoryStore:
    """In-process store for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileStore:
    """Key/value slots persisted together as one JSON object on disk."""

    def __init__(self, path: Path) -> None:
        """Purpose: Initialize the store and hydrate slots from disk if available.
        Inputs/Outputs: Input is the backing file path; no return value.
        Side Effects / State: Loads string slots into an in-memory cache.
        Dependencies: Calls _load.
        Failure Modes: JSON decode errors are swallowed and leave an empty cache.
        If Removed: Selection and chat history are lost between restarts.
        Testing Notes: Verify a corrupt file yields empty slots and a valid file hydrates.
        """
        # Keep the backing path and preload persisted slots if present.
        self._path = path
        self._values: Dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        """Purpose: Load persisted slots from disk into memory.
        Inputs/Outputs: Reads from self._path; no return value.
        Side Effects / State: Populates the _values cache with string entries only.
        Dependencies: Uses json.loads.
        Failure Modes: Missing file, unreadable bytes, or a non-object document
            result in an empty cache.
        If Removed: Previously stored state is never restored on startup.
        Testing Notes: Corrupt JSON should not crash.
        """
        # Read and decode persisted JSON if present.
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("storage=%s status=corrupt action=reset", self._path)
            return
        if not isinstance(data, dict):
            logger.warning("storage=%s status=unexpected_shape action=reset", self._path)
            return
        self._values = {key: value for key, value in data.items() if isinstance(value, str)}

    def _persist(self) -> None:
        """Purpose: Write all slots to disk.
        Inputs/Outputs: Writes to self._path; no return value.
        Side Effects / State: Creates the parent directory when missing.
        Dependencies: Uses json.dumps and Path.write_text.
        Failure Modes: IO errors raise exceptions (not caught here).
        If Removed: Mutations are never saved across restarts.
        Testing Notes: Ensure the file contains every slot as a string value.
        """
        # Serialize the whole cache so slots stay consistent on disk.
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._values, ensure_ascii=False, indent=2), encoding="utf-8")

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self._persist()
