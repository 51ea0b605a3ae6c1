"""
Backend selection and the one-time ephemeral -> durable migration.

States:
    UNRESOLVED -> EPHEMERAL_ONLY        anonymous
    UNRESOLVED -> DURABLE_ONLY          signed in, nothing local
    EPHEMERAL_ONLY -> MIGRATION_PENDING signed in and local content exists
    MIGRATION_PENDING -> MIGRATING -> DURABLE_ONLY
    MIGRATING -> MIGRATION_FAILED       acts as EPHEMERAL_ONLY; retried on the
                                        next trigger until the attempt ceiling

Outside this module only `active_backend`, `migration_outstanding` and the
state-change subscription are used.
"""
import asyncio
import logging
import time
from datetime import datetime
from typing import Callable, List, Optional

from resumesync.config import MAX_MIGRATION_ATTEMPTS
from resumesync.models.document import CanonicalDocument
from resumesync.models.enums import MigrationOutcome, NotificationKind, SelectorState
from resumesync.services.durable_backend import DurableBackend
from resumesync.services.ephemeral_backend import EphemeralBackend, is_local_id
from resumesync.services.identity import IdentityProvider
from resumesync.services.notifications import NotificationBus
from resumesync.services.persistence import PersistencePort, SaveOptions
from resumesync.services.session_markers import SessionMarkers

logger = logging.getLogger(__name__)

_EPHEMERAL_STATES = (SelectorState.EPHEMERAL_ONLY, SelectorState.MIGRATION_FAILED)


def migration_title(content: CanonicalDocument, today: datetime) -> str:
    """"{First}'s Resume", or "Resume - Mon D, YYYY" without a name."""
    first_name = content.identity.first_name if content.identity else ""
    if first_name:
        return f"{first_name}'s Resume"
    return f"Resume - {today:%b} {today.day}, {today.year}"


class BackendSelector:
    def __init__(
        self,
        ephemeral: EphemeralBackend,
        durable: DurableBackend,
        identity: IdentityProvider,
        markers: SessionMarkers,
        notifications: Optional[NotificationBus] = None,
        max_attempts: int = MAX_MIGRATION_ATTEMPTS,
        clock: Callable[[], float] = time.time,
    ):
        self.ephemeral = ephemeral
        self.durable = durable
        self.identity = identity
        self.markers = markers
        self.notifications = notifications or NotificationBus()
        self.max_attempts = max_attempts
        self.clock = clock

        self.state = SelectorState.UNRESOLVED
        self.last_outcome: Optional[MigrationOutcome] = None
        self.migrated_title: Optional[str] = None
        self._lock = asyncio.Lock()
        self._listeners: List[Callable[[SelectorState], None]] = []
        self._auth_task: Optional[asyncio.Task] = None
        self._unsubscribe_identity = identity.subscribe(self._on_auth_event)

    # -- exposed surface -----------------------------------------------------

    @property
    def active_backend(self) -> PersistencePort:
        if self.state == SelectorState.DURABLE_ONLY:
            return self.durable
        return self.ephemeral

    @property
    def migration_outstanding(self) -> bool:
        if self.state in (SelectorState.MIGRATION_PENDING, SelectorState.MIGRATING):
            return True
        return self.state in _EPHEMERAL_STATES and self._eligible()

    @property
    def migration_exhausted(self) -> bool:
        return self.markers.migration_attempts() >= self.max_attempts

    def subscribe(self, callback: Callable[[SelectorState], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def close(self):
        self._unsubscribe_identity()
        if self._auth_task and not self._auth_task.done():
            self._auth_task.cancel()

    # -- transitions ---------------------------------------------------------

    def _set_state(self, state: SelectorState):
        if state == self.state:
            return
        logger.info("Backend selector transition", extra={"from_state": self.state.value, "to_state": state.value})
        self.state = state
        for callback in list(self._listeners):
            callback(state)

    def _eligible(self) -> bool:
        return (
            self.identity.is_authenticated
            and not self.markers.migration_completed()
            and (self.ephemeral.has_content() or self.markers.needs_migration())
        )

    async def resolve(self) -> SelectorState:
        """Pick the initial backend and run a migration if one is due."""
        if not self.identity.is_authenticated:
            self._set_state(SelectorState.EPHEMERAL_ONLY)
        elif self.markers.durable_only():
            self._set_state(SelectorState.DURABLE_ONLY)
        elif self._eligible():
            self._set_state(SelectorState.MIGRATION_PENDING)
            await self._auto_migrate()
        else:
            self._set_state(SelectorState.DURABLE_ONLY)
        return self.state

    def _on_auth_event(self, authenticated: bool):
        self._auth_task = asyncio.get_running_loop().create_task(self.on_auth_changed(authenticated))

    async def wait_idle(self):
        """Await a migration triggered by an auth event, if any."""
        if self._auth_task:
            await self._auth_task

    async def on_auth_changed(self, authenticated: bool) -> SelectorState:
        if not authenticated:
            self.markers.clear_durable_only()
            current_id = self.markers.current_id()
            if current_id and not is_local_id(current_id):
                # A remote id means nothing to the local slot
                self.markers.clear_identity_markers()
            self._set_state(SelectorState.EPHEMERAL_ONLY)
            return self.state

        if self.state in (SelectorState.MIGRATION_PENDING, SelectorState.MIGRATING, SelectorState.DURABLE_ONLY):
            return self.state
        if self._eligible():
            self._set_state(SelectorState.MIGRATION_PENDING)
            await self._auto_migrate()
        else:
            self._set_state(SelectorState.DURABLE_ONLY)
        return self.state

    async def check_migration(self) -> Optional[MigrationOutcome]:
        """Re-evaluate eligibility, e.g. after a local edit while signed in."""
        if self.state not in _EPHEMERAL_STATES or not self.identity.is_authenticated:
            return None
        if self.markers.migration_completed():
            # Another context finished the transfer
            return await self.migrate()
        if not self._eligible():
            return None
        self._set_state(SelectorState.MIGRATION_PENDING)
        return await self._auto_migrate()

    async def retry_migration(self) -> MigrationOutcome:
        """Manual retry: clears the attempt counter and ignores the ceiling."""
        self.markers.reset_migration_attempts()
        if self.state in _EPHEMERAL_STATES and self._eligible():
            self._set_state(SelectorState.MIGRATION_PENDING)
        return await self.migrate()

    async def _auto_migrate(self) -> MigrationOutcome:
        if self.migration_exhausted:
            self._set_state(SelectorState.MIGRATION_FAILED)
            self.last_outcome = MigrationOutcome.EXHAUSTED
            return self.last_outcome
        return await self.migrate()

    # -- the transfer ----------------------------------------------------------

    async def migrate(self) -> MigrationOutcome:
        async with self._lock:
            self.last_outcome = await self._migrate_locked()
            return self.last_outcome

    async def _migrate_locked(self) -> MigrationOutcome:
        if self.markers.migration_completed() or self.state == SelectorState.DURABLE_ONLY:
            self._set_state(SelectorState.DURABLE_ONLY)
            return MigrationOutcome.ALREADY_DURABLE
        if not self.identity.is_authenticated:
            return MigrationOutcome.NOT_AUTHENTICATED
        if not self.markers.acquire_migration_lock():
            logger.info("Migration already running in another context")
            if self.state == SelectorState.MIGRATION_PENDING:
                self._set_state(SelectorState.EPHEMERAL_ONLY)
            return MigrationOutcome.IN_PROGRESS

        try:
            self._set_state(SelectorState.MIGRATING)
            loaded = await self.ephemeral.load(None)
            if not loaded.ok:
                logger.info("No local resume to migrate", extra={"reason": loaded.reason})
                self.markers.clear_needs_migration()
                self._set_state(SelectorState.DURABLE_ONLY)
                return MigrationOutcome.NO_DATA

            content, meta = loaded.value.content, loaded.value.meta
            title = await self.durable.unique_title(
                migration_title(content, datetime.fromtimestamp(self.clock()))
            )
            # Always a brand-new remote document; a local id means nothing remotely
            saved = await self.durable.save(content, SaveOptions(
                title=title,
                template_id=meta.template_id,
                section_order=meta.section_order,
            ))
            if not saved.ok:
                return self._record_failure(saved.reason)

            self.migrated_title = saved.value.title
            self.ephemeral.clear()
            self.markers.mark_migration_completed()
            self.markers.set_current_id(saved.value.id)
            self.markers.clear_pending_changes()
            self._set_state(SelectorState.DURABLE_ONLY)
            self.notifications.emit(
                NotificationKind.MIGRATION_SUCCEEDED,
                "Your resume was saved to your account.",
                resume_id=saved.value.id,
            )
            return MigrationOutcome.SUCCESS
        finally:
            self.markers.release_migration_lock()

    def _record_failure(self, reason: Optional[str]) -> MigrationOutcome:
        attempts = self.markers.record_migration_failure()
        logger.warning("Migration failed", extra={"attempts": attempts, "reason": reason})
        self._set_state(SelectorState.MIGRATION_FAILED)
        self.notifications.emit(
            NotificationKind.MIGRATION_FAILED,
            "We couldn't move your resume to your account yet. Your work is still saved on this device.",
            attempts=attempts,
        )
        if attempts >= self.max_attempts:
            self.notifications.emit(
                NotificationKind.MIGRATION_EXHAUSTED,
                "Automatic transfer stopped. You can retry it manually.",
                attempts=attempts,
            )
        return MigrationOutcome.FAILED
