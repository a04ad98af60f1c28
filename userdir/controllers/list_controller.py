"""
Paginated, searchable list of directory records.

The controller owns the records of the page currently shown. Page loads run
through the directory client on a worker thread; when several loads overlap,
only the result for the most recently requested page is applied. Confirmed
edits and deletes are patched into the in-memory page with
``reconcile_records`` and never trigger a refetch, so a delete can leave a short
page until the next explicit navigation.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional

from userdir.config import get_config_value
from userdir.directory_client import DirectoryClient
from userdir.errors import DirectoryError, NotFound, Unauthorized
from userdir.messaging import get_message
from userdir.models import Mutation, MutationKind, PageState, Record
from userdir.navigation import LOGIN_ROUTE, Navigator
from userdir.session import SessionGuard


class LoadPhase(Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


def reconcile_records(records: List[Record], mutation: Mutation) -> List[Record]:
    """
    Apply a confirmed mutation to a page of records and return the new list.

    An update replaces the record with the same id in place; a delete drops it.
    Records with other ids keep their values and order. The input list is not
    modified.
    """
    if mutation.kind is MutationKind.UPDATED and mutation.record is not None:
        return [mutation.record if r.id == mutation.record_id else r for r in records]
    if mutation.kind is MutationKind.DELETED:
        return [r for r in records if r.id != mutation.record_id]
    return list(records)


def filter_records(records: List[Record], search_term: str) -> List[Record]:
    """Case-insensitive substring match over first name, last name and email."""
    term = (search_term or "").lower()
    if not term:
        return list(records)
    return [
        r
        for r in records
        if term in f"{r.first_name} {r.last_name} {r.email}".lower()
    ]


def page_window(current_page: int, total_pages: int, size: int = 5) -> List[int]:
    """Page numbers to offer around the current page, at most ``size`` of them."""
    start = max(1, current_page - 2)
    end = min(total_pages, start + size - 1)
    if end - start < size - 1:
        start = max(1, end - size + 1)
    return list(range(start, end + 1))


class ListController:
    """Owns the page state of the directory view."""

    def __init__(
        self,
        client: DirectoryClient,
        guard: SessionGuard,
        navigator: Navigator,
        on_change: Optional[Callable[["ListController"], None]] = None,
    ):
        self.client = client
        self.guard = guard
        self.navigator = navigator
        self.on_change = on_change
        self.state = PageState()
        self.phase = LoadPhase.IDLE
        self.error_message: Optional[str] = None
        self._requested_page: Optional[int] = None
        self._request_seq = 0
        self.logger = logging.getLogger(self.__class__.__name__)

    # --- derived state -------------------------------------------------

    @property
    def records(self) -> List[Record]:
        return self.state.records

    @property
    def current_page(self) -> int:
        return self.state.current_page

    @property
    def requested_page(self) -> int:
        """The page most recently asked for; differs from current_page while it loads."""
        if self._requested_page is None:
            return self.state.current_page
        return self._requested_page

    @property
    def total_pages(self) -> int:
        return self.state.total_pages

    @property
    def search_term(self) -> str:
        return self.state.search_term

    @property
    def visible_records(self) -> List[Record]:
        return filter_records(self.state.records, self.state.search_term)

    @property
    def is_loading(self) -> bool:
        return self.phase is LoadPhase.LOADING

    @property
    def has_previous(self) -> bool:
        return self.state.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.state.current_page < self.state.total_pages

    def page_numbers(self) -> List[int]:
        size = get_config_value("pagination.visible_pages", 5)
        return page_window(self.state.current_page, self.state.total_pages, size)

    def find(self, record_id: int) -> Optional[Record]:
        for record in self.state.records:
            if record.id == record_id:
                return record
        return None

    # --- loading -------------------------------------------------------

    def _notify(self) -> None:
        if self.on_change:
            self.on_change(self)

    def force_logout(self) -> None:
        """Drop the credential and send the user back to the login view."""
        self.logger.warning("Session rejected or expired. Logging out.")
        self.guard.end_session()
        self._requested_page = None
        self.phase = LoadPhase.IDLE
        self.navigator.replace(LOGIN_ROUTE)

    async def mount(self) -> bool:
        """Entry of the directory view: guard check, then the first page."""
        if not self.guard.require_session(lambda: self.navigator.replace(LOGIN_ROUTE)):
            return False
        await self.load_page(1)
        return True

    async def load_page(self, page: int) -> bool:
        """
        Fetch ``page`` and apply it if it is still the latest requested page.

        Returns True when this call's result was applied.
        """
        token = self.guard.token()
        if token is None:
            self.force_logout()
            return False

        self._request_seq += 1
        request_id = self._request_seq
        self._requested_page = page
        self.phase = LoadPhase.LOADING
        self.error_message = None
        self._notify()

        try:
            result = await asyncio.to_thread(self.client.list_page, page, token)
        except Unauthorized:
            # Any rejected token ends the session, whichever page was asked for
            self.force_logout()
            if request_id == self._request_seq:
                self.phase = LoadPhase.ERRORED
                self._notify()
            return False
        except DirectoryError as e:
            if request_id != self._request_seq:
                self.logger.debug(f"Dropping failure of superseded request for page {page}.")
                return False
            self.logger.error(f"Failed to load users page {page}: {e.message}")
            key = "errors.list_not_found" if isinstance(e, NotFound) else "errors.list_load_failed"
            self._fail(get_message(key))
            return False
        except Exception as e:
            if request_id != self._request_seq:
                return False
            self.logger.error(f"Unexpected error loading page {page}: {str(e)}", exc_info=True)
            self._fail(get_message("errors.list_load_failed"))
            return False

        if self.guard.token() != token:
            self.logger.debug(f"Discarding page {page}; the session ended while it was loading.")
            return False
        if page != self._requested_page:
            self.logger.debug(
                f"Discarding stale result for page {page}; page {self._requested_page} was requested since."
            )
            return False

        self.state.records = list(result.records)
        self.state.total_pages = max(1, result.total_pages)
        self.state.current_page = min(max(1, result.current_page), self.state.total_pages)
        self._requested_page = self.state.current_page
        if request_id == self._request_seq:
            self.phase = LoadPhase.LOADED
        self.logger.info(
            f"Loaded {len(result.records)} users (page {self.state.current_page} of {self.state.total_pages})."
        )
        self._notify()
        return True

    def _fail(self, message: str) -> None:
        # Records on screen stay, so the requested page falls back to theirs
        self._requested_page = self.state.current_page
        self.error_message = message
        self.phase = LoadPhase.ERRORED
        self._notify()

    async def go_to_page(self, page: int) -> bool:
        if page < 1 or page > self.state.total_pages:
            self.logger.debug(f"Ignoring request for page {page} outside 1..{self.state.total_pages}.")
            return False
        return await self.load_page(page)

    async def next_page(self) -> bool:
        return await self.go_to_page(self.requested_page + 1)

    async def previous_page(self) -> bool:
        return await self.go_to_page(self.requested_page - 1)

    # --- local state ---------------------------------------------------

    def set_search_term(self, term: str) -> None:
        self.state.search_term = term or ""
        self._notify()

    def dismiss_error(self) -> None:
        self.error_message = None
        self._notify()

    def apply_mutation(self, mutation: Mutation) -> None:
        self.state.records = reconcile_records(self.state.records, mutation)
        self.logger.info(f"Reconciled {mutation.kind.value} user {mutation.record_id} into page {self.state.current_page}.")
        self._notify()

    def on_record_updated(self, record: Record) -> None:
        self.apply_mutation(Mutation.updated(record))

    def on_record_deleted(self, record_id: int) -> None:
        self.apply_mutation(Mutation.deleted(record_id))
