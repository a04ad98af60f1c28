import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userdir.models import PageResult, Record
from userdir.navigation import DIRECTORY_ROUTE, Navigator
from userdir.session import SessionGuard
from userdir.storage import CredentialStore, LocalStorage

DAY_MS = 24 * 60 * 60 * 1000
START_MS = 1_700_000_000_000


class FakeClock:
    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


class FakeHandle:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.callback()


class FakeScheduler:
    def __init__(self) -> None:
        self.handles: List[FakeHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeHandle:
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle


def make_record(record_id: int, **overrides: str) -> Record:
    fields = {
        "first_name": f"First{record_id}",
        "last_name": f"Last{record_id}",
        "email": f"user{record_id}@reqres.in",
        "avatar": f"https://reqres.in/img/faces/{record_id}-image.jpg",
    }
    fields.update(overrides)
    return Record(id=record_id, **fields)


class FakeDirectoryClient:
    """In-memory stand-in for DirectoryClient; set ``errors[op]`` to make a call fail."""

    def __init__(self, pages: Optional[Dict[int, List[Record]]] = None, token: str = "abc") -> None:
        self.pages = pages or {
            1: [make_record(1), make_record(2), make_record(3)],
            2: [make_record(4), make_record(5), make_record(6)],
        }
        self.token = token
        self.errors: Dict[str, Exception] = {}
        self.calls: List[tuple] = []

    def _maybe_fail(self, op: str) -> None:
        error = self.errors.get(op)
        if error is not None:
            raise error

    def login(self, email: str, password: str) -> dict:
        self.calls.append(("login", email))
        self._maybe_fail("login")
        return {"token": self.token}

    def list_page(self, page: int, token: Optional[str]) -> PageResult:
        self.calls.append(("list_page", page, token))
        self._maybe_fail("list_page")
        return PageResult(
            records=list(self.pages.get(page, [])),
            current_page=page,
            total_pages=len(self.pages),
        )

    def update_record(self, record_id: int, fields: dict, token: Optional[str]) -> Record:
        self.calls.append(("update_record", record_id, dict(fields), token))
        self._maybe_fail("update_record")
        return Record(id=record_id, **fields)

    def delete_record(self, record_id: int, token: Optional[str]) -> bool:
        self.calls.append(("delete_record", record_id, token))
        self._maybe_fail("delete_record")
        return True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(str(tmp_path / "storage.sqlite3"))


@pytest.fixture
def store(storage, clock) -> CredentialStore:
    return CredentialStore(storage, clock=clock)


@pytest.fixture
def guard(store) -> SessionGuard:
    return SessionGuard(store, ttl_hours=24)


@pytest.fixture
def logged_in(guard) -> SessionGuard:
    guard.start_session("abc")
    return guard


@pytest.fixture
def navigator() -> Navigator:
    return Navigator(DIRECTORY_ROUTE)


@pytest.fixture
def fake_client() -> FakeDirectoryClient:
    return FakeDirectoryClient()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()
