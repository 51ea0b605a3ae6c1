"""
Identity/auth provider port.

The core only needs "are we authenticated", an opaque subject id, a bearer
token for the durable store, and a change subscription.
"""
import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class IdentityProvider:
    """Mutable provider driven by whatever auth layer hosts the session."""

    def __init__(self, subject_id: Optional[str] = None, token: Optional[str] = None):
        self._subject_id = subject_id
        self._token = token
        self._listeners: List[Callable[[bool], None]] = []

    @property
    def is_authenticated(self) -> bool:
        return bool(self._subject_id and self._token)

    @property
    def subject_id(self) -> Optional[str]:
        return self._subject_id

    def get_token(self) -> Optional[str]:
        return self._token

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def sign_in(self, subject_id: str, token: str):
        was_authenticated = self.is_authenticated
        self._subject_id = subject_id
        self._token = token
        if not was_authenticated:
            self._notify()

    def sign_out(self):
        was_authenticated = self.is_authenticated
        self._subject_id = None
        self._token = None
        if was_authenticated:
            self._notify()

    def _notify(self):
        authenticated = self.is_authenticated
        logger.info("Auth state changed", extra={"authenticated": authenticated})
        for callback in list(self._listeners):
            callback(authenticated)
