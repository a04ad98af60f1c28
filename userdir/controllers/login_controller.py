"""Login form workflow: local checks, authentication, credential storage."""

import asyncio
import logging
from typing import Optional

from userdir.directory_client import DirectoryClient
from userdir.errors import NetworkError, Unauthorized
from userdir.messaging import get_message
from userdir.navigation import DIRECTORY_ROUTE, Navigator
from userdir.session import SessionGuard
from userdir.validation import validate_login


class LoginController:
    def __init__(self, client: DirectoryClient, guard: SessionGuard, navigator: Navigator):
        self.client = client
        self.guard = guard
        self.navigator = navigator
        self.error: Optional[str] = None
        self.loading = False
        self.logger = logging.getLogger(self.__class__.__name__)

    def mount(self) -> bool:
        """Skip the form when a valid session already exists. Returns True if redirected."""
        if self.guard.is_authenticated():
            self.navigator.replace(DIRECTORY_ROUTE)
            return True
        return False

    async def submit(self, email: str, password: str) -> bool:
        if self.loading:
            return False
        self.error = None

        errors = validate_login(email, password)
        if errors:
            self.error = errors["form"]
            return False

        self.loading = True
        try:
            response = await asyncio.to_thread(self.client.login, email, password)
            self.guard.start_session(response["token"])
            self.logger.info("Login successful, token stored.")
            self.navigator.replace(DIRECTORY_ROUTE)
            return True
        except Unauthorized as e:
            self.logger.warning(f"Login rejected: {e.message}")
            self.error = get_message("login.invalid_credentials")
        except NetworkError as e:
            self.logger.error(f"Login network error: {e.message}")
            self.error = get_message("login.network_error")
        except Exception as e:
            self.logger.error(f"Login error: {str(e)}", exc_info=True)
            self.error = get_message("login.failed")
        finally:
            self.loading = False
        return False
