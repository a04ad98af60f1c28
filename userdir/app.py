"""
Composition of the directory client application.

This module wires the components together the same way for the console shell
and for tests:
- one LocalStorage / CredentialStore, created once and injected everywhere
- the SessionGuard built on that store
- the DirectoryClient (stateless, receives the token per call)
- the LoginController, the ListController, and at most one RecordEditController
"""

import logging
from typing import Optional

from userdir.config import get_config_value
from userdir.controllers.edit_controller import LoopScheduler, RecordEditController
from userdir.controllers.list_controller import ListController
from userdir.controllers.login_controller import LoginController
from userdir.directory_client import DirectoryClient
from userdir.navigation import DIRECTORY_ROUTE, LOGIN_ROUTE, Navigator
from userdir.session import SessionGuard
from userdir.storage import CredentialStore, LocalStorage


class DirectoryApp:
    """
    The directory client application.

    Attributes:
        store: Credential store shared by every component
        guard: Session guard for the protected directory view
        client: Remote directory API client
        navigator: Current view and its history
        login: Login form controller
        directory: Record list controller
        editor: Open edit session, if any
    """

    def __init__(
        self,
        store: Optional[CredentialStore] = None,
        client: Optional[DirectoryClient] = None,
        navigator: Optional[Navigator] = None,
        scheduler: Optional[LoopScheduler] = None,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        if store is None:
            db_file_path = get_config_value("app_settings.storage_file_name", "userdir.db")
            self.logger.info(f"Opening local storage at {db_file_path}")
            store = CredentialStore(LocalStorage(db_file_path))
        self.store = store
        self.guard = SessionGuard(store)
        self.client = client or DirectoryClient()
        self.navigator = navigator or Navigator()
        self.scheduler = scheduler or LoopScheduler()
        self.login = LoginController(self.client, self.guard, self.navigator)
        self.directory = ListController(self.client, self.guard, self.navigator)
        self.editor: Optional[RecordEditController] = None

    @property
    def in_directory(self) -> bool:
        return self.navigator.current_route == DIRECTORY_ROUTE

    async def start(self) -> None:
        """Show the directory when a session exists, otherwise the login view."""
        if not self.login.mount():
            self.logger.info("No valid session, showing login view.")
            return
        await self.directory.mount()

    async def sign_in(self, email: str, password: str) -> bool:
        if not await self.login.submit(email, password):
            return False
        await self.directory.mount()
        return True

    def logout(self) -> None:
        self.close_editor()
        self.guard.end_session()
        self.navigator.replace(LOGIN_ROUTE)
        self.logger.info("Logged out.")

    async def change_page(self, page: int) -> bool:
        # Navigating away closes an idle edit session
        self.close_editor()
        return await self.directory.go_to_page(page)

    async def next_page(self) -> bool:
        self.close_editor()
        return await self.directory.next_page()

    async def previous_page(self) -> bool:
        self.close_editor()
        return await self.directory.previous_page()

    def open_editor(self, record_id: int) -> Optional[RecordEditController]:
        if self.editor is not None and self.editor.is_open:
            if self.editor.is_locked:
                return None
            self.editor.close()

        record = self.directory.find(record_id)
        if record is None:
            return None

        editor = RecordEditController(
            record,
            self.client,
            self.guard,
            on_updated=self.directory.on_record_updated,
            on_deleted=self.directory.on_record_deleted,
            on_unauthorized=self.directory.force_logout,
            scheduler=self.scheduler,
        )
        editor.on_close = lambda: self._editor_closed(editor)
        self.editor = editor
        return editor

    def close_editor(self) -> None:
        if self.editor is not None and not self.editor.is_locked:
            self.editor.close()

    def _editor_closed(self, editor: RecordEditController) -> None:
        if self.editor is editor:
            self.editor = None
