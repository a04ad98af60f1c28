"""Gatekeeping of protected views on the stored credential."""

import logging
from typing import Callable, Optional

from userdir.config import get_config_value
from userdir.storage import CredentialStore

MILLIS_PER_HOUR = 60 * 60 * 1000


class SessionGuard:
    """
    Answers whether the caller is authenticated, using only the credential store.

    Expiry is enforced lazily by ``CredentialStore.read``; there is no timer, so a
    session past its nominal expiry is only dropped on the next check.
    """

    def __init__(self, store: CredentialStore, ttl_hours: Optional[int] = None):
        self.store = store
        self.ttl_hours = (
            ttl_hours if ttl_hours is not None else get_config_value("session.ttl_hours", 24)
        )
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def ttl_millis(self) -> int:
        return int(self.ttl_hours * MILLIS_PER_HOUR)

    def is_authenticated(self) -> bool:
        authenticated = self.store.read() is not None
        self.logger.debug(f"isAuthenticated check - credential present: {authenticated}")
        return authenticated

    def token(self) -> Optional[str]:
        credential = self.store.read()
        return credential.token if credential else None

    def require_session(self, on_unauthenticated: Callable[[], None]) -> bool:
        """Return True when a protected view may render; otherwise run the callback."""
        if self.is_authenticated():
            return True
        self.logger.info("No valid session for protected view, redirecting.")
        on_unauthenticated()
        return False

    def start_session(self, token: str) -> None:
        self.store.save(token, self.ttl_millis)

    def end_session(self) -> None:
        self.store.clear()
