"""
Edit/delete workflow for a single record.

Phases: editing -> submitting -> succeeded -> closed, or submitting -> failed,
from which the user may edit and try again. Cancel closes directly from editing
or failed. While submitting or succeeded the controller is locked and refuses
further mutating calls. After success the session closes itself once the
confirmation has been displayed, via a timer obtained from the scheduler.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Dict, Optional, Protocol

from userdir.config import get_config_value
from userdir.directory_client import DirectoryClient
from userdir.errors import DirectoryError, NotFound, Unauthorized, ValidationError
from userdir.messaging import get_message
from userdir.models import RECORD_FIELDS, Record
from userdir.session import SessionGuard
from userdir.validation import ensure_valid


class EditPhase(Enum):
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CLOSED = "closed"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class LoopScheduler:
    """Schedules callbacks on the running asyncio loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class RecordEditController:
    """Owns one record's edit session and reports confirmed results upward."""

    def __init__(
        self,
        record: Record,
        client: DirectoryClient,
        guard: SessionGuard,
        on_updated: Callable[[Record], None],
        on_deleted: Callable[[int], None],
        on_close: Optional[Callable[[], None]] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
        scheduler: Optional[LoopScheduler] = None,
        close_delay: Optional[float] = None,
    ):
        self.target = record
        self.client = client
        self.guard = guard
        self.on_updated = on_updated
        self.on_deleted = on_deleted
        self.on_close = on_close
        self.on_unauthorized = on_unauthorized or guard.end_session
        self.scheduler = scheduler or LoopScheduler()
        self.close_delay = (
            close_delay
            if close_delay is not None
            else get_config_value("edit_settings.success_display_seconds", 2)
        )
        self.form_fields: Dict[str, str] = record.form_fields()
        self.field_errors: Dict[str, str] = {}
        self.form_error: Optional[str] = None
        self.success_message: Optional[str] = None
        self.phase = EditPhase.EDITING
        self._close_timer: Optional[TimerHandle] = None
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def is_locked(self) -> bool:
        return self.phase in (EditPhase.SUBMITTING, EditPhase.SUCCEEDED)

    @property
    def is_open(self) -> bool:
        return self.phase is not EditPhase.CLOSED

    def _can_act(self, action: str) -> bool:
        if self.is_locked or not self.is_open:
            self.logger.debug(f"Ignoring {action} on user {self.target.id} in phase {self.phase.value}.")
            return False
        return True

    def update_field(self, name: str, value: str) -> bool:
        if name not in RECORD_FIELDS:
            raise KeyError(f"Unknown field '{name}'")
        if not self._can_act("field update"):
            return False
        self.form_fields[name] = value
        self.field_errors.pop(name, None)
        self.phase = EditPhase.EDITING
        return True

    async def submit(self) -> bool:
        """Validate and save the form. Returns True when the update was confirmed."""
        if not self._can_act("submit"):
            return False

        self.form_error = None
        try:
            ensure_valid(self.form_fields)
        except ValidationError as e:
            self.logger.debug(f"Validation failed for user {self.target.id}: {sorted(e.field_errors)}")
            self.field_errors = e.field_errors
            self.phase = EditPhase.EDITING
            return False
        self.field_errors = {}

        token = self.guard.token()
        if token is None:
            self._unauthorized()
            return False

        self.phase = EditPhase.SUBMITTING
        fields = dict(self.form_fields)
        try:
            updated = await asyncio.to_thread(
                self.client.update_record, self.target.id, fields, token
            )
        except Unauthorized:
            self._unauthorized()
            return False
        except NotFound as e:
            self._fail(get_message("errors.record_missing"), e)
            return False
        except DirectoryError as e:
            self._fail(get_message("errors.update_failed"), e)
            return False
        except Exception as e:
            self.logger.error(f"Unexpected error updating user {self.target.id}: {str(e)}", exc_info=True)
            self._fail(get_message("errors.update_failed"))
            return False

        self.target = updated
        self.on_updated(updated)
        self._succeed(get_message("edit.update_success"))
        return True

    async def remove(self, confirm: Callable[[], bool]) -> bool:
        """Delete the record after an explicit yes from ``confirm``."""
        if not self._can_act("delete"):
            return False
        if not confirm():
            self.logger.debug(f"Delete of user {self.target.id} not confirmed.")
            return False

        token = self.guard.token()
        if token is None:
            self._unauthorized()
            return False

        self.form_error = None
        self.phase = EditPhase.SUBMITTING
        try:
            await asyncio.to_thread(self.client.delete_record, self.target.id, token)
        except Unauthorized:
            self._unauthorized()
            return False
        except NotFound as e:
            self._fail(get_message("errors.record_missing"), e)
            return False
        except DirectoryError as e:
            self._fail(get_message("errors.delete_failed"), e)
            return False
        except Exception as e:
            self.logger.error(f"Unexpected error deleting user {self.target.id}: {str(e)}", exc_info=True)
            self._fail(get_message("errors.delete_failed"))
            return False

        self.on_deleted(self.target.id)
        self._succeed(get_message("edit.delete_success"))
        return True

    def cancel(self) -> bool:
        if not self._can_act("cancel"):
            return False
        self.close()
        return True

    def close(self) -> None:
        """Destroy the session. Also fired by the auto-close timer."""
        if self._close_timer is not None:
            self._close_timer.cancel()
            self._close_timer = None
        if self.phase is EditPhase.CLOSED:
            return
        self.phase = EditPhase.CLOSED
        self.logger.debug(f"Edit session for user {self.target.id} closed.")
        if self.on_close:
            self.on_close()

    def _succeed(self, message: str) -> None:
        self.phase = EditPhase.SUCCEEDED
        self.success_message = message
        self._close_timer = self.scheduler.call_later(self.close_delay, self.close)

    def _fail(self, message: str, error: Optional[DirectoryError] = None) -> None:
        if error is not None:
            self.logger.error(f"Request for user {self.target.id} failed: {error.message}")
        self.form_error = message
        self.phase = EditPhase.FAILED

    def _unauthorized(self) -> None:
        self.logger.warning(f"Session rejected while editing user {self.target.id}.")
        self.close()
        self.on_unauthorized()
