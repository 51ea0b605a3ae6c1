"""
Client-local key-value storage.

A process-local dict (like the in-memory cache) plus a JSON-file variant so a
session survives restarts. Every mutation is announced to subscribers so
other contexts sharing the storage can react without polling.
"""
import copy
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from resumesync.utils.exceptions import StorageDisabled

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageChange:
    key: str
    old_value: Any
    new_value: Any
    origin: Optional[str] = None


class MemoryStorage:
    """Shared in-memory store; values must be JSON-compatible."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})
        self._listeners: List[Callable[[StorageChange], None]] = []
        self.enabled = True

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def keys(self) -> List[str]:
        return list(self._data.keys())

    def set(self, key: str, value: Any, origin: Optional[str] = None) -> None:
        self._check_enabled()
        old = self._data.get(key)
        self._data[key] = copy.deepcopy(value)
        self._persist()
        self._announce([StorageChange(key, old, copy.deepcopy(value), origin)])

    def remove(self, key: str, origin: Optional[str] = None) -> None:
        self.remove_many([key], origin=origin)

    def remove_many(self, keys: Iterable[str], origin: Optional[str] = None) -> None:
        """Drop several keys in one step; listeners only hear about it afterwards."""
        self._check_enabled()
        changes = []
        for key in keys:
            if key in self._data:
                changes.append(StorageChange(key, self._data.pop(key), None, origin))
        if changes:
            self._persist()
            self._announce(changes)

    def subscribe(self, callback: Callable[[StorageChange], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _check_enabled(self):
        if not self.enabled:
            raise StorageDisabled()

    def _persist(self):
        pass

    def _announce(self, changes: List[StorageChange]):
        for change in changes:
            for callback in list(self._listeners):
                try:
                    callback(change)
                except Exception:
                    logger.exception("Storage listener failed", extra={"key": change.key})


class JsonFileStorage(MemoryStorage):
    """MemoryStorage mirrored to a JSON file after every mutation."""

    def __init__(self, path: str):
        self.path = path
        initial = {}
        if os.path.exists(path):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    initial = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Ignoring unreadable storage file", extra={"path": path, "error": str(e)})
                initial = {}
        super().__init__(initial if isinstance(initial, dict) else {})

    def _persist(self):
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".storage-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
