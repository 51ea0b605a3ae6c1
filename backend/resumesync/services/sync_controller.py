"""
Synchronization controller: keeps the in-memory resume and the active
backend in step.

Edits replace whole sections and restart a debounce timer; when it fires a
full snapshot is written through whatever backend the selector says is
active. Writes are serialized per controller, results are tagged with a
sequence number, and only the latest one may change the document's id or
metadata. A remote document that fails to open keeps its id; edits made
meanwhile are held and replayed onto it once a load succeeds.
"""
import asyncio
import logging
import secrets
from typing import Any, Callable, Dict, List, Optional

from resumesync.config import AUTOSAVE_DEBOUNCE_SECONDS, CURRENT_ID_KEY
from resumesync.models.document import (
    CanonicalDocument,
    DocumentMeta,
    default_document,
    snapshot,
)
from resumesync.models.enums import (
    BackendKind,
    NotificationKind,
    SectionKey,
    SelectorState,
    SyncStatus,
)
from resumesync.services.backend_selector import BackendSelector
from resumesync.services.completion import evaluate_completion
from resumesync.services.ephemeral_backend import is_local_id
from resumesync.services.identity import IdentityProvider
from resumesync.services.local_storage import StorageChange
from resumesync.services.normalizer import normalize
from resumesync.services.notifications import NotificationBus
from resumesync.services.persistence import PersistencePort, PersistenceResult, SaveOptions
from resumesync.services.session_markers import SessionMarkers
from resumesync.utils.exceptions import ImportRejectedError, ValidationError

logger = logging.getLogger(__name__)

_NO_DEFERRED = object()


class SyncController:
    """
    One editing session over one document.

    The selector, the markers and the ephemeral backend must share a
    context id so the controller can tell its own storage writes from
    another context's.
    """

    def __init__(
        self,
        selector: BackendSelector,
        markers: SessionMarkers,
        identity: IdentityProvider,
        notifications: Optional[NotificationBus] = None,
        debounce_seconds: float = AUTOSAVE_DEBOUNCE_SECONDS,
    ):
        self.selector = selector
        self.markers = markers
        self.identity = identity
        self.notifications = notifications or selector.notifications
        self.debounce_seconds = debounce_seconds

        self.document_id: Optional[str] = None
        self.content: CanonicalDocument = default_document()
        self.meta = DocumentMeta()
        self.progress = evaluate_completion(self.content)
        self.status = SyncStatus.IDLE
        self.last_error: Optional[str] = None

        self._hydrated = False
        self._hydrate_task: Optional[asyncio.Task] = None
        self._skip_next_edit = False
        self._timer: Optional[asyncio.TimerHandle] = None
        self._write_task: Optional[asyncio.Task] = None
        self._followup = False
        self._seq = 0
        self._last_written: Optional[str] = None
        self._deferred_external_id: Any = _NO_DEFERRED
        self._bound_kind: Optional[BackendKind] = None
        self._creation_owner = f"{markers.context_id}/{secrets.token_hex(4)}"

        # Set while a known remote document failed to load; edits are held
        # and replayed onto it once a load succeeds
        self._load_failed = False
        self._held_content: Optional[CanonicalDocument] = None
        self._held_sections: Dict[SectionKey, Any] = {}
        self._held_meta: Dict[str, Any] = {}

        self._unsubscribers: List[Callable[[], None]] = [
            markers.storage.subscribe(self._on_storage_change),
            selector.subscribe(self._on_backend_changed),
        ]

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    @property
    def is_dirty(self) -> bool:
        return snapshot(self.content, self.meta) != self._last_written

    @property
    def write_in_flight(self) -> bool:
        return self._write_task is not None and not self._write_task.done()

    def _bind(self) -> PersistencePort:
        backend = self.selector.active_backend
        self._bound_kind = backend.kind
        return backend

    def _set_content(self, content: CanonicalDocument):
        self.content = content
        self.progress = evaluate_completion(content)

    def _reset_document(self):
        """Default content, no id; any result still in flight becomes stale."""
        self._seq += 1
        self.document_id = None
        self._set_content(default_document())
        self.meta = DocumentMeta()
        self._last_written = None
        self._drop_held_edits()

    def _drop_held_edits(self):
        self._load_failed = False
        self._held_content = None
        self._held_sections = {}
        self._held_meta = {}

    # ------------------------------------------------------------------
    # Hydration
    # ------------------------------------------------------------------

    async def hydrate(self, document_id: Optional[str] = None) -> CanonicalDocument:
        """Load the session's document once; concurrent callers share one load."""
        if self._hydrated:
            return self.content
        if self._hydrate_task is None:
            self._hydrate_task = asyncio.get_running_loop().create_task(self._hydrate(document_id))
        await self._hydrate_task
        return self.content

    async def _hydrate(self, document_id: Optional[str]):
        if self.selector.state == SelectorState.UNRESOLVED:
            await self.selector.resolve()
        backend = self._bind()

        reloaded = self.markers.consume_reload()
        pending = self.markers.has_pending_changes()
        target = document_id or self.markers.editing_target() or self.markers.current_id()
        durable = backend.kind == BackendKind.DURABLE
        if durable and is_local_id(target):
            target = None
        if durable and document_id and not is_local_id(document_id):
            self.markers.begin_editing(document_id)

        if durable and not target:
            logger.info("No resume to load; starting from the default document")
        else:
            result = await backend.load(target)
            if result.ok:
                self._apply_loaded(result.value, target)
                logger.info("Hydrated resume", extra={"resume_id": self.document_id, "backend": backend.kind.value})
            elif result.not_found and target and durable:
                self.document_id = target
                self._recover_missing()
            elif not result.not_found:
                if target and durable:
                    # Keep the id: the next write must update this document, never create another
                    self.document_id = target
                    self.meta = self.meta.model_copy(update={"id": target})
                    self._load_failed = True
                self._record_failure(result, notify=False)

        self._hydrated = True
        if reloaded:
            # A reload is not a fresh open: the next edit is real
            self._skip_next_edit = False
            if pending:
                logger.info("Flushing changes recorded before reload", extra={"resume_id": self.document_id})
                self._last_written = None
                self.markers.clear_pending_changes()
                self._schedule_write()
        else:
            self._skip_next_edit = True

    def _apply_loaded(self, stored, fallback_id: Optional[str]):
        self.document_id = stored.meta.id or fallback_id
        self.meta = stored.meta.model_copy(update={"id": self.document_id})
        self._set_content(stored.content)
        self._last_written = snapshot(self.content, self.meta)

    async def _retry_load(self) -> bool:
        """Load the document that failed to open and replay the edits held since."""
        backend = self._bind()
        seq = self._seq
        result = await backend.load(self.document_id)
        if seq != self._seq or not self._load_failed:
            return False
        if result.not_found:
            self._recover_missing()
            return False
        if not result.ok:
            self._record_failure(result)
            return False

        held_content, held_sections, held_meta = self._held_content, self._held_sections, self._held_meta
        self._drop_held_edits()
        self._apply_loaded(result.value, self.document_id)
        content = held_content or self.content
        for key, value in held_sections.items():
            content = content.with_section(key, value)
        self._set_content(content)
        self.meta = self.meta.model_copy(update=held_meta)
        logger.info("Loaded resume after an earlier failure", extra={"resume_id": self.document_id})
        return True

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_section(self, key, value) -> CanonicalDocument:
        self._set_content(self.content.with_section(key, value))
        if self._changed(skippable=True) and self._load_failed:
            self._held_sections[SectionKey(key)] = value
        return self.content

    def replace_content(self, content: CanonicalDocument) -> CanonicalDocument:
        self._set_content(content)
        if self._changed(skippable=True) and self._load_failed:
            self._held_content = content
            self._held_sections = {}
        return self.content

    def _change_meta(self, **update):
        self.meta = self.meta.model_copy(update=update)
        if self._load_failed:
            self._held_meta.update(update)
        self._changed()

    def set_template(self, template_id: str):
        self._change_meta(template_id=template_id)

    def set_title(self, title: str):
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title cannot be empty", field="title")
        self._change_meta(title=title)

    def set_section_order(self, order: List[str]):
        try:
            keys = [SectionKey(key).value for key in order]
        except ValueError as e:
            raise ValidationError(str(e), field="sectionOrder") from e
        if len(set(keys)) != len(keys):
            raise ValidationError("Duplicate section key", field="sectionOrder")
        self._change_meta(section_order=keys)

    def _changed(self, skippable: bool = False) -> bool:
        """Schedule a write; False when the change was the initial-load echo."""
        if skippable and self._skip_next_edit:
            # The editor echoes the freshly loaded document back once
            self._skip_next_edit = False
            logger.debug("Initial-load write skipped")
            return False
        self._skip_next_edit = False
        self._schedule_write()
        return True

    # ------------------------------------------------------------------
    # Write scheduling
    # ------------------------------------------------------------------

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule_write(self):
        self._cancel_timer()
        self.status = SyncStatus.PENDING
        self._timer = asyncio.get_running_loop().call_later(self.debounce_seconds, self._start_write)

    def _start_write(self):
        self._timer = None
        if self.write_in_flight:
            self._followup = True
            return
        self._write_task = asyncio.get_running_loop().create_task(self._write())

    async def wait_idle(self):
        """Await the in-flight write and any follow-up it triggers."""
        while self.write_in_flight:
            await self._write_task

    async def flush(self):
        """Write now instead of waiting for the debounce timer."""
        self._cancel_timer()
        await self.wait_idle()
        self._write_task = asyncio.get_running_loop().create_task(self._write())
        await self.wait_idle()

    async def _write(self):
        self._followup = False
        try:
            await self._write_snapshot()
        finally:
            self._after_write()

    def _after_write(self):
        if self._deferred_external_id is not _NO_DEFERRED:
            external_id, self._deferred_external_id = self._deferred_external_id, _NO_DEFERRED
            self._adopt_external_id(external_id)
        if self._followup:
            self._followup = False
            self._write_task = asyncio.get_running_loop().create_task(self._write())

    async def _write_snapshot(self):
        if self._load_failed and not await self._retry_load():
            return
        if not self.content.has_identity():
            logger.warning("Refusing to save a resume without identity", extra={"resume_id": self.document_id})
            self.status = SyncStatus.UNSAVED
            self.last_error = "Resume has no identity section"
            return

        if snapshot(self.content, self.meta) == self._last_written:
            if self.status in (SyncStatus.PENDING, SyncStatus.SAVING):
                self.status = SyncStatus.SAVED
            return

        backend = self._bind()
        creating = backend.kind == BackendKind.DURABLE and not self.document_id
        if creating:
            if not self.markers.acquire_creation_lock(self._creation_owner):
                logger.info("Another session is creating this resume; retrying after debounce")
                self._schedule_write()
                return
            created_id = self.markers.current_id()
            if created_id and not is_local_id(created_id):
                # Created by another session of this context while we waited
                self.markers.release_creation_lock(self._creation_owner)
                self._adopt_id(created_id)
                creating = False

        self._seq += 1
        seq = self._seq
        sent_id = self.document_id
        sent_content, sent_meta = self.content, self.meta
        self.status = SyncStatus.SAVING
        options = SaveOptions(
            id=sent_id,
            title=sent_meta.title,
            template_id=sent_meta.template_id,
            section_order=list(sent_meta.section_order),
        )
        try:
            result = await backend.save(sent_content, options)

            if seq != self._seq:
                logger.info("Discarding stale save result", extra={"seq": seq, "latest_seq": self._seq})
                return

            if result.ok:
                self._accept(result.value, sent_content, sent_meta)
            elif result.not_found and sent_id:
                self._recover_missing()
            else:
                self._record_failure(result)
        finally:
            if creating:
                # Released after the new id is recorded so a waiting session adopts it
                self.markers.release_creation_lock(self._creation_owner)

        if result.ok and backend.kind == BackendKind.EPHEMERAL and self.selector.migration_outstanding:
            await self.selector.check_migration()

    def _accept(self, receipt, sent_content: CanonicalDocument, sent_meta: DocumentMeta):
        if receipt.id != self.document_id:
            self._adopt_id(receipt.id)
        update = {"id": receipt.id, "last_updated": receipt.last_updated}
        if receipt.title and receipt.title != sent_meta.title:
            # The store settled on another title (made unique on create)
            if self.meta.title == sent_meta.title:
                update["title"] = receipt.title
            sent_meta = sent_meta.model_copy(update={"title": receipt.title})
        self.meta = self.meta.model_copy(update=update)
        self._last_written = snapshot(sent_content, sent_meta)
        self.last_error = None
        self.markers.clear_pending_changes()
        # Edits made while the write was in flight keep the indicator pending
        self.status = SyncStatus.PENDING if self.is_dirty else SyncStatus.SAVED
        self.notifications.emit(NotificationKind.SAVED, "All changes saved", resume_id=receipt.id)

    def _record_failure(self, result: PersistenceResult, notify: bool = True):
        logger.warning(
            "Resume save failed",
            extra={"resume_id": self.document_id, "kind": result.kind.value if result.kind else None, "reason": result.reason},
        )
        self.status = SyncStatus.UNSAVED
        self.last_error = result.reason
        self.markers.mark_pending_changes()
        if notify:
            self.notifications.emit(
                NotificationKind.SAVE_FAILED,
                "Your latest changes haven't been saved yet.",
                reason=result.reason,
            )

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def _adopt_id(self, new_id: Optional[str]):
        previous = self.document_id
        self.document_id = new_id
        self.meta = self.meta.model_copy(update={"id": new_id})
        self.markers.set_current_id(new_id)
        self.notifications.emit(
            NotificationKind.IDENTITY_CHANGED,
            "Resume identity updated",
            resume_id=new_id,
            previous_id=previous,
        )

    def _adopt_external_id(self, new_id: Optional[str]):
        if new_id == self.document_id:
            return
        logger.info("Adopting resume id set by another context", extra={"resume_id": new_id, "previous_id": self.document_id})
        previous = self.document_id
        self._seq += 1
        self.document_id = new_id
        self.meta = self.meta.model_copy(update={"id": new_id})
        self._last_written = None
        self.notifications.emit(
            NotificationKind.IDENTITY_CHANGED,
            "Resume identity updated in another window",
            resume_id=new_id,
            previous_id=previous,
            external=True,
        )

    def _on_storage_change(self, change: StorageChange):
        if change.key != CURRENT_ID_KEY or change.origin == self.markers.context_id:
            return
        if change.new_value == self.document_id:
            return
        if self.write_in_flight:
            self._deferred_external_id = change.new_value
            return
        self._adopt_external_id(change.new_value)

    def _on_backend_changed(self, state: SelectorState):
        kind = self.selector.active_backend.kind
        if not self._hydrated or kind == self._bound_kind:
            return
        self._bound_kind = kind
        if kind == BackendKind.DURABLE:
            # The migrated copy lives under the id the selector recorded
            current_id = self.markers.current_id()
            migrated_id = None if is_local_id(current_id) else current_id
            logger.info("Rebinding to durable backend", extra={"resume_id": migrated_id})
            was_clean = not self.is_dirty
            self._seq += 1
            self.document_id = migrated_id
            update = {"id": migrated_id}
            if migrated_id and self.selector.migrated_title:
                update["title"] = self.selector.migrated_title
            self.meta = self.meta.model_copy(update=update)
            if migrated_id is None:
                self._last_written = None
            elif was_clean:
                self._last_written = snapshot(self.content, self.meta)
        else:
            logger.info("Rebinding to ephemeral backend")
            self._seq += 1
            self._drop_held_edits()
            self.document_id = None
            self.meta = self.meta.model_copy(update={"id": None})
            self._last_written = None
        if self.is_dirty and self.content != default_document():
            self._schedule_write()

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def _recover_missing(self):
        """The document was deleted elsewhere: drop its id and start from the default document.

        The next genuine edit creates a fresh document through the active backend.
        """
        missing_id = self.document_id
        logger.warning("Resume no longer exists; resetting", extra={"resume_id": missing_id})
        self._cancel_timer()
        self._reset_document()
        self.markers.clear_identity_markers()
        self.status = SyncStatus.IDLE
        self.last_error = None
        self.notifications.emit(
            NotificationKind.DOCUMENT_MISSING,
            "This resume was deleted elsewhere. A new one will be started when you edit.",
            resume_id=missing_id,
        )

    # ------------------------------------------------------------------
    # Session actions
    # ------------------------------------------------------------------

    async def start_new(self):
        """Start over: drop the current document and its markers."""
        self._cancel_timer()
        await self.wait_idle()
        backend = self._bind()
        if backend.kind == BackendKind.EPHEMERAL:
            await backend.delete(None)
        self.markers.clear_identity_markers()
        self.markers.clear_pending_changes()
        self._reset_document()
        self._skip_next_edit = False
        self.status = SyncStatus.IDLE
        self.last_error = None
        logger.info("Started a new resume")

    def import_document(self, raw: Any) -> CanonicalDocument:
        """Replace the content with a normalized import; rejected imports change nothing."""
        try:
            document = normalize(raw)
        except ImportRejectedError as e:
            self.notifications.emit(NotificationKind.IMPORT_REJECTED, e.message, reason=e.reason)
            raise

        self._set_content(document)
        self._skip_next_edit = False
        if self._load_failed:
            self._held_content = document
            self._held_sections = {}
        self._change_meta(title=document.suggested_title())
        return document

    def before_unload(self):
        """Record that the session is going away, and whether edits were unsaved."""
        self.markers.mark_unload()
        if self.is_dirty or self.status == SyncStatus.UNSAVED:
            self.markers.mark_pending_changes()

    def close(self):
        self._cancel_timer()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
