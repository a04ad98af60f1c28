"""Interactive console view over DirectoryApp. Presentation only."""

import asyncio
import getpass
import logging
import shlex
from typing import Callable, List, Optional

from userdir.app import DirectoryApp
from userdir.controllers.edit_controller import EditPhase
from userdir.messaging import get_message
from userdir.models import RECORD_FIELDS

logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  login                 sign in
  list                  show the current page
  page N | next | prev  change page
  search [TEXT]         filter the current page (no TEXT clears the filter)
  edit ID               open a user for editing
  set FIELD VALUE       change a field ({fields})
  save                  submit the edit form
  delete                delete the open user
  cancel                close the edit form
  dismiss               hide the page error
  logout | quit
""".format(fields=", ".join(RECORD_FIELDS))


class ConsoleShell:
    def __init__(
        self,
        app: DirectoryApp,
        output: Callable[[str], None] = print,
        prompt: Optional[Callable[[str], str]] = None,
        secret_prompt: Optional[Callable[[str], str]] = None,
    ):
        self.app = app
        self.output = output
        self.prompt = prompt or input
        self.secret_prompt = secret_prompt or getpass.getpass

    async def run(self) -> None:
        await self.app.start()
        self.output(get_message("login.title", "User Directory"))
        self.output(HELP_TEXT)
        self.render()
        while True:
            try:
                line = await asyncio.to_thread(self.prompt, "> ")
            except EOFError:
                break
            if not await self.handle(line):
                break
        logger.info("Console shell closed.")

    async def handle(self, line: str) -> bool:
        """Run one command line. Returns False when the shell should exit."""
        try:
            parts = shlex.split(line)
        except ValueError as e:
            self.output(str(e))
            return True
        if not parts:
            return True
        command, args = parts[0].lower(), parts[1:]

        if command in ("quit", "exit"):
            return False
        if command == "help":
            self.output(HELP_TEXT)
            return True
        if command == "login":
            await self._login(args)
            return True
        if not self.app.in_directory:
            self.output(get_message("errors.session_expired"))
            return True

        if command == "logout":
            self.app.logout()
            self.output(get_message("directory.logged_out"))
        elif command == "list":
            self.render()
        elif command == "page" and len(args) == 1 and args[0].isdigit():
            await self.app.change_page(int(args[0]))
            self.render()
        elif command == "next":
            await self.app.next_page()
            self.render()
        elif command == "prev":
            await self.app.previous_page()
            self.render()
        elif command == "search":
            self.app.directory.set_search_term(" ".join(args))
            self.render()
        elif command == "dismiss":
            self.app.directory.dismiss_error()
        elif command == "edit" and len(args) == 1 and args[0].isdigit():
            self._open(int(args[0]))
        elif command in ("set", "save", "delete", "cancel"):
            await self._edit_command(command, args)
        else:
            self.output(HELP_TEXT)
        return True

    async def _login(self, args: List[str]) -> None:
        email = args[0] if args else await asyncio.to_thread(self.prompt, "Email: ")
        password = await asyncio.to_thread(self.secret_prompt, "Password: ")
        if await self.app.sign_in(email, password):
            self.output(get_message("login.success"))
            self.render()
        else:
            self.output(self.app.login.error or get_message("login.failed"))

    def _open(self, record_id: int) -> None:
        editor = self.app.open_editor(record_id)
        if editor is None:
            self.output(get_message("errors.record_not_on_page", record_id=record_id))
            return
        self.render_editor()

    async def _edit_command(self, command: str, args: List[str]) -> None:
        editor = self.app.editor
        if editor is None:
            self.output(HELP_TEXT)
            return
        if editor.is_locked:
            self.output(get_message("edit.locked"))
            return

        if command == "set":
            if len(args) < 2 or args[0] not in RECORD_FIELDS:
                self.output(HELP_TEXT)
                return
            editor.update_field(args[0], " ".join(args[1:]))
        elif command == "save":
            await editor.submit()
        elif command == "delete":
            await editor.remove(self._confirm_delete)
        elif command == "cancel":
            editor.cancel()
            return
        self.render_editor()

    def _confirm_delete(self) -> bool:
        answer = self.prompt(f"{get_message('edit.delete_confirm')} [y/N] ")
        return answer.strip().lower() in ("y", "yes")

    def render(self) -> None:
        directory = self.app.directory
        if not self.app.in_directory:
            self.output(get_message("login.prompt"))
            return
        self.output(get_message("directory.title"))
        if directory.search_term:
            self.output(f"search: {directory.search_term}")
        if directory.error_message:
            self.output(f"! {directory.error_message}")
        if directory.is_loading:
            self.output(get_message("directory.loading"))
            return
        records = directory.visible_records
        if not records:
            self.output(get_message("directory.empty"))
        for record in records:
            self.output(
                get_message(
                    "directory.record_line",
                    id=record.id,
                    first_name=record.first_name,
                    last_name=record.last_name,
                    email=record.email,
                )
            )
        pages = " ".join(
            f"[{n}]" if n == directory.current_page else str(n)
            for n in directory.page_numbers()
        )
        self.output(
            f"{get_message('directory.page_status', page=directory.current_page, total_pages=directory.total_pages)}  {pages}"
        )

    def render_editor(self) -> None:
        editor = self.app.editor
        if editor is None:
            return
        self.output(f"{get_message('edit.title')} #{editor.target.id} ({editor.phase.value})")
        if editor.form_error:
            self.output(f"! {editor.form_error}")
        if editor.phase is EditPhase.SUCCEEDED and editor.success_message:
            self.output(editor.success_message)
        for name in RECORD_FIELDS:
            line = f"  {name}: {editor.form_fields[name]}"
            if name in editor.field_errors:
                line += f"  <- {editor.field_errors[name]}"
            self.output(line)
