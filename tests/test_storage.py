import json
import sqlite3

from conftest import DAY_MS, START_MS
from userdir.storage import AUTH_STORAGE_KEY, CredentialStore, LocalStorage


def test_save_then_read_returns_credential(store, storage):
    store.save("abc", DAY_MS)

    credential = store.read()
    assert credential is not None
    assert credential.token == "abc"
    assert credential.expires_at == START_MS + DAY_MS

    raw = json.loads(storage.get_item(AUTH_STORAGE_KEY))
    assert raw == {"token": "abc", "expiresAt": START_MS + DAY_MS}


def test_expired_credential_is_cleared_on_read(store, storage, clock):
    store.save("abc", 1000)
    clock.advance(1000)

    assert store.read() is None
    assert storage.get_item(AUTH_STORAGE_KEY) is None
    # Repeated reads stay absent
    assert store.read() is None


def test_credential_still_valid_just_before_expiry(store, clock):
    store.save("abc", 1000)
    clock.advance(999)

    assert store.read() is not None


def test_malformed_values_are_cleared(store, storage):
    for raw in (
        "not json",
        json.dumps(["abc"]),
        json.dumps({"expiresAt": START_MS + DAY_MS}),
        json.dumps({"token": "", "expiresAt": START_MS + DAY_MS}),
        json.dumps({"token": "abc", "expiresAt": "tomorrow"}),
        '{"token": "abc", "expiresAt": NaN}',
        '{"token": "abc", "expiresAt": Infinity}',
    ):
        storage.set_item(AUTH_STORAGE_KEY, raw)
        assert store.read() is None
        assert storage.get_item(AUTH_STORAGE_KEY) is None


def test_clear_is_idempotent(store, storage):
    store.save("abc", DAY_MS)
    store.clear()
    store.clear()

    assert store.read() is None


def test_read_never_raises_on_storage_failure(store, monkeypatch):
    def broken(_key):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(store.storage, "get_item", broken)

    assert store.read() is None


def test_credential_survives_a_new_store_instance(tmp_path, clock):
    path = str(tmp_path / "persist.sqlite3")
    CredentialStore(LocalStorage(path), clock=clock).save("abc", DAY_MS)

    credential = CredentialStore(LocalStorage(path), clock=clock).read()
    assert credential is not None
    assert credential.token == "abc"
