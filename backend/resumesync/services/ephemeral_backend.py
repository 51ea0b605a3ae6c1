"""
Ephemeral backend: one document in client-local storage.

Holds a single slot under fixed keys (content, template, progress, id,
section order, title). Always available unless the storage itself is
disabled.
"""
import logging
import secrets
import string
import time
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from resumesync.config import (
    CONTENT_KEY,
    CURRENT_ID_KEY,
    DEFAULT_TEMPLATE_ID,
    EPHEMERAL_DOCUMENT_KEYS,
    PROGRESS_KEY,
    SECTION_ORDER_KEY,
    TEMPLATE_KEY,
    TITLE_KEY,
)
from resumesync.models.document import CanonicalDocument, DocumentMeta, StoredDocument
from resumesync.models.enums import DEFAULT_SECTION_ORDER, BackendKind, FailureKind
from resumesync.services.completion import evaluate_completion
from resumesync.services.local_storage import MemoryStorage
from resumesync.services.persistence import PersistencePort, PersistenceResult, SaveOptions, SaveReceipt
from resumesync.utils.exceptions import StorageDisabled

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits
LOCAL_ID_PREFIX = "local_"


def mint_local_id(clock=time.time) -> str:
    """`local_{epoch_ms}_{7 random chars}`"""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"{LOCAL_ID_PREFIX}{int(clock() * 1000)}_{suffix}"


def is_local_id(document_id: Optional[str]) -> bool:
    return bool(document_id) and document_id.startswith(LOCAL_ID_PREFIX)


class EphemeralBackend(PersistencePort):
    kind = BackendKind.EPHEMERAL

    def __init__(self, storage: MemoryStorage, context_id: Optional[str] = None, clock=time.time):
        self.storage = storage
        self.context_id = context_id
        self.clock = clock

    def is_available(self) -> bool:
        return self.storage.enabled

    def has_content(self) -> bool:
        return self.storage.get(CONTENT_KEY) is not None

    def _meta(self, blob: dict) -> DocumentMeta:
        return DocumentMeta(
            id=self.storage.get(CURRENT_ID_KEY),
            title=self.storage.get(TITLE_KEY) or CanonicalDocument.from_stored(blob).suggested_title(),
            template_id=self.storage.get(TEMPLATE_KEY) or DEFAULT_TEMPLATE_ID,
            last_updated=blob.get("lastUpdated"),
            section_order=self.storage.get(SECTION_ORDER_KEY) or list(DEFAULT_SECTION_ORDER),
        )

    def _matches(self, document_id: Optional[str]) -> bool:
        stored = self.storage.get(CURRENT_ID_KEY)
        return not document_id or not stored or stored == document_id

    async def load(self, document_id: Optional[str] = None) -> PersistenceResult[StoredDocument]:
        if not self.is_available():
            return PersistenceResult.failure(FailureKind.UNAVAILABLE, "Local storage is disabled")

        blob = self.storage.get(CONTENT_KEY)
        if blob is None or not self._matches(document_id):
            return PersistenceResult.failure(FailureKind.NOT_FOUND, "No local resume found")

        try:
            content = CanonicalDocument.from_stored(blob)
        except PydanticValidationError as e:
            logger.warning("Stored local resume is unreadable", extra={"errors": e.error_count()})
            return PersistenceResult.failure(FailureKind.VALIDATION, "Stored local resume is unreadable")

        return PersistenceResult.success(StoredDocument(content=content, meta=self._meta(blob)))

    async def save(
        self, content: CanonicalDocument, options: Optional[SaveOptions] = None
    ) -> PersistenceResult[SaveReceipt]:
        options = options or SaveOptions()
        if not self.is_available():
            return PersistenceResult.failure(FailureKind.UNAVAILABLE, "Local storage is disabled")

        # The slot only ever holds local ids; a remote id left by a migration is not reused
        stored_id = self.storage.get(CURRENT_ID_KEY)
        document_id = next(
            (i for i in (options.id, stored_id) if is_local_id(i)),
            None,
        ) or mint_local_id(self.clock)
        title = options.title or self.storage.get(TITLE_KEY) or content.suggested_title()
        last_updated = datetime.fromtimestamp(self.clock(), tz=timezone.utc).isoformat()

        blob = content.to_stored()
        blob["lastUpdated"] = last_updated
        try:
            # Full snapshot every time; never a partial patch
            self.storage.set(CONTENT_KEY, blob, origin=self.context_id)
            self.storage.set(TEMPLATE_KEY, options.template_id or self.storage.get(TEMPLATE_KEY) or DEFAULT_TEMPLATE_ID, origin=self.context_id)
            self.storage.set(PROGRESS_KEY, evaluate_completion(content), origin=self.context_id)
            self.storage.set(SECTION_ORDER_KEY, options.section_order or self.storage.get(SECTION_ORDER_KEY) or list(DEFAULT_SECTION_ORDER), origin=self.context_id)
            self.storage.set(TITLE_KEY, title, origin=self.context_id)
            self.storage.set(CURRENT_ID_KEY, document_id, origin=self.context_id)
        except StorageDisabled as e:
            return PersistenceResult.failure(FailureKind.UNAVAILABLE, e.message)

        logger.debug("Saved local resume", extra={"resume_id": document_id})
        return PersistenceResult.success(SaveReceipt(id=document_id, title=title, last_updated=last_updated))

    async def delete(self, document_id: Optional[str] = None) -> PersistenceResult[None]:
        if not self.is_available():
            return PersistenceResult.failure(FailureKind.UNAVAILABLE, "Local storage is disabled")
        if not self.has_content() or not self._matches(document_id):
            return PersistenceResult.failure(FailureKind.NOT_FOUND, "No local resume found")
        try:
            self.storage.remove_many(EPHEMERAL_DOCUMENT_KEYS, origin=self.context_id)
        except StorageDisabled as e:
            return PersistenceResult.failure(FailureKind.UNAVAILABLE, e.message)
        return PersistenceResult.success()

    async def list(self) -> PersistenceResult[List[DocumentMeta]]:
        if not self.is_available():
            return PersistenceResult.failure(FailureKind.UNAVAILABLE, "Local storage is disabled")
        blob = self.storage.get(CONTENT_KEY)
        if blob is None:
            return PersistenceResult.success([])
        return PersistenceResult.success([self._meta(blob)])

    def clear(self):
        """Drop the slot without going through the result envelope (used after migration)."""
        self.storage.remove_many(EPHEMERAL_DOCUMENT_KEYS, origin=self.context_id)
