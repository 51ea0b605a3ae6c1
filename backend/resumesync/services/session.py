"""
Wiring for one editing context (a browser tab, a CLI run, a test).
"""
import secrets
from dataclasses import dataclass
from typing import Optional

import httpx

from resumesync.config import AUTOSAVE_DEBOUNCE_SECONDS, MAX_MIGRATION_ATTEMPTS, RESUME_API_BASE_URL
from resumesync.services.backend_selector import BackendSelector
from resumesync.services.durable_backend import DurableBackend
from resumesync.services.ephemeral_backend import EphemeralBackend
from resumesync.services.identity import IdentityProvider
from resumesync.services.local_storage import MemoryStorage
from resumesync.services.notifications import NotificationBus
from resumesync.services.session_markers import SessionMarkers
from resumesync.services.sync_controller import SyncController


@dataclass
class EditingSession:
    context_id: str
    storage: MemoryStorage
    identity: IdentityProvider
    notifications: NotificationBus
    markers: SessionMarkers
    ephemeral: EphemeralBackend
    durable: DurableBackend
    selector: BackendSelector
    controller: SyncController

    def close(self):
        self.controller.close()
        self.selector.close()


def open_session(
    storage: MemoryStorage,
    identity: IdentityProvider,
    context_id: Optional[str] = None,
    base_url: str = RESUME_API_BASE_URL,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    debounce_seconds: float = AUTOSAVE_DEBOUNCE_SECONDS,
    max_attempts: int = MAX_MIGRATION_ATTEMPTS,
    notifications: Optional[NotificationBus] = None,
) -> EditingSession:
    """Build every collaborator for one context over a shared storage.

    Must be called with a running event loop when `identity` can change, since
    auth changes schedule the migration on it.
    """
    context_id = context_id or f"ctx_{secrets.token_hex(4)}"
    notifications = notifications or NotificationBus()
    markers = SessionMarkers(storage, context_id)
    ephemeral = EphemeralBackend(storage, context_id=context_id)
    durable = DurableBackend(identity, base_url=base_url, transport=transport)
    selector = BackendSelector(
        ephemeral, durable, identity, markers,
        notifications=notifications,
        max_attempts=max_attempts,
    )
    controller = SyncController(
        selector, markers, identity,
        notifications=notifications,
        debounce_seconds=debounce_seconds,
    )
    return EditingSession(
        context_id=context_id,
        storage=storage,
        identity=identity,
        notifications=notifications,
        markers=markers,
        ephemeral=ephemeral,
        durable=durable,
        selector=selector,
        controller=controller,
    )
