"""
Transient session markers kept in local storage.

Each marker is stored as {"value": ..., "at": epoch_seconds} and is treated
as absent (and cleared) once older than its TTL. This is the only module that
reads or writes marker keys; controllers go through these methods.
"""
import logging
import time
from typing import Any, Callable, Optional

from resumesync.config import (
    CREATION_LOCK_KEY,
    CREATION_LOCK_TTL_SECONDS,
    CURRENT_ID_KEY,
    DB_ONLY_MODE_KEY,
    EDITING_LOCK_KEY,
    EDITING_LOCK_TTL_SECONDS,
    EDITING_TARGET_KEY,
    MIGRATION_ATTEMPTS_KEY,
    MIGRATION_COMPLETED_KEY,
    MIGRATION_LOCK_KEY,
    MIGRATION_LOCK_TTL_SECONDS,
    NEEDS_MIGRATION_KEY,
    PENDING_CHANGES_KEY,
    PENDING_TIMESTAMP_KEY,
    RELOAD_MARKER_KEY,
    RELOAD_MARKER_TTL_SECONDS,
    RELOAD_TIMESTAMP_KEY,
)
from resumesync.services.local_storage import MemoryStorage

logger = logging.getLogger(__name__)


class SessionMarkers:
    """Marker registry over a shared storage, tagged with the writing context."""

    def __init__(self, storage: MemoryStorage, context_id: str, clock: Callable[[], float] = time.time):
        self.storage = storage
        self.context_id = context_id
        self.clock = clock

    # -- generic helpers -------------------------------------------------

    def _write(self, key: str, value: Any = True):
        self.storage.set(key, {"value": value, "at": self.clock()}, origin=self.context_id)

    def _read(self, key: str, ttl_seconds: Optional[float]) -> Optional[Any]:
        entry = self.storage.get(key)
        if not isinstance(entry, dict) or "at" not in entry:
            return None
        if ttl_seconds is not None and self.clock() - entry["at"] > ttl_seconds:
            logger.debug("Expired marker cleared", extra={"marker": key})
            self.storage.remove(key, origin=self.context_id)
            return None
        return entry.get("value")

    def _clear(self, *keys: str):
        self.storage.remove_many(keys, origin=self.context_id)

    # -- current document id ---------------------------------------------

    def current_id(self) -> Optional[str]:
        return self.storage.get(CURRENT_ID_KEY)

    def set_current_id(self, document_id: Optional[str]):
        if document_id is None:
            self.storage.remove(CURRENT_ID_KEY, origin=self.context_id)
        else:
            self.storage.set(CURRENT_ID_KEY, document_id, origin=self.context_id)

    # -- reload detection --------------------------------------------------

    def mark_unload(self):
        """Written right before the page goes away."""
        now = self.clock()
        self.storage.set(RELOAD_MARKER_KEY, {"value": True, "at": now}, origin=self.context_id)
        self.storage.set(RELOAD_TIMESTAMP_KEY, now, origin=self.context_id)

    def consume_reload(self) -> bool:
        """True when the previous unload happened within the reload TTL; always clears."""
        recent = bool(self._read(RELOAD_MARKER_KEY, RELOAD_MARKER_TTL_SECONDS))
        self._clear(RELOAD_MARKER_KEY, RELOAD_TIMESTAMP_KEY)
        return recent

    # -- dirty state ---------------------------------------------------------

    def mark_pending_changes(self):
        self.storage.set(PENDING_CHANGES_KEY, True, origin=self.context_id)
        self.storage.set(PENDING_TIMESTAMP_KEY, self.clock(), origin=self.context_id)

    def has_pending_changes(self) -> bool:
        return bool(self.storage.get(PENDING_CHANGES_KEY))

    def clear_pending_changes(self):
        self._clear(PENDING_CHANGES_KEY, PENDING_TIMESTAMP_KEY)

    # -- migration -------------------------------------------------------------

    def acquire_migration_lock(self) -> bool:
        holder = self._read(MIGRATION_LOCK_KEY, MIGRATION_LOCK_TTL_SECONDS)
        if holder and holder != self.context_id:
            return False
        self._write(MIGRATION_LOCK_KEY, self.context_id)
        return True

    def release_migration_lock(self):
        self._clear(MIGRATION_LOCK_KEY)

    def migration_attempts(self) -> int:
        return int(self.storage.get(MIGRATION_ATTEMPTS_KEY) or 0)

    def record_migration_failure(self) -> int:
        attempts = self.migration_attempts() + 1
        self.storage.set(MIGRATION_ATTEMPTS_KEY, attempts, origin=self.context_id)
        self.storage.set(NEEDS_MIGRATION_KEY, True, origin=self.context_id)
        return attempts

    def needs_migration(self) -> bool:
        """Set by a failed transfer until one succeeds or finds nothing to move."""
        return bool(self.storage.get(NEEDS_MIGRATION_KEY))

    def clear_needs_migration(self):
        self._clear(NEEDS_MIGRATION_KEY)

    def reset_migration_attempts(self):
        self._clear(MIGRATION_ATTEMPTS_KEY)

    def migration_completed(self) -> bool:
        return bool(self.storage.get(MIGRATION_COMPLETED_KEY))

    def mark_migration_completed(self):
        self.storage.set(MIGRATION_COMPLETED_KEY, True, origin=self.context_id)
        self.storage.set(DB_ONLY_MODE_KEY, True, origin=self.context_id)
        self._clear(NEEDS_MIGRATION_KEY, MIGRATION_ATTEMPTS_KEY)

    def durable_only(self) -> bool:
        return bool(self.storage.get(DB_ONLY_MODE_KEY))

    def clear_durable_only(self):
        self._clear(DB_ONLY_MODE_KEY)

    # -- creation / editing locks ---------------------------------------------

    def acquire_creation_lock(self, owner: Optional[str] = None) -> bool:
        """Refused while a different owner holds it; `owner` defaults to the context id.

        Two controllers in the same context pass distinct owners so only one of
        them creates the document.
        """
        owner = owner or self.context_id
        holder = self._read(CREATION_LOCK_KEY, CREATION_LOCK_TTL_SECONDS)
        if holder and holder != owner:
            return False
        self._write(CREATION_LOCK_KEY, owner)
        return True

    def release_creation_lock(self, owner: Optional[str] = None):
        holder = self._read(CREATION_LOCK_KEY, CREATION_LOCK_TTL_SECONDS)
        if holder in (None, owner or self.context_id):
            self._clear(CREATION_LOCK_KEY)

    def begin_editing(self, document_id: str):
        """Remember which existing document this session opened, so a reload returns to it."""
        self._write(EDITING_LOCK_KEY, True)
        self.storage.set(EDITING_TARGET_KEY, document_id, origin=self.context_id)

    def editing_target(self) -> Optional[str]:
        if not self._read(EDITING_LOCK_KEY, EDITING_LOCK_TTL_SECONDS):
            self._clear(EDITING_TARGET_KEY)
            return None
        return self.storage.get(EDITING_TARGET_KEY)

    # -- bulk ----------------------------------------------------------------

    def clear_identity_markers(self):
        self._clear(CURRENT_ID_KEY, EDITING_LOCK_KEY, EDITING_TARGET_KEY, CREATION_LOCK_KEY)
