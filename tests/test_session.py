from conftest import DAY_MS, START_MS


def test_authenticated_until_cleared(guard):
    guard.start_session("abc")
    assert guard.is_authenticated()
    assert guard.token() == "abc"

    guard.end_session()
    assert not guard.is_authenticated()
    assert guard.token() is None


def test_authenticated_until_expiry_passes(guard, clock):
    guard.start_session("abc")

    clock.advance(DAY_MS - 1)
    assert guard.is_authenticated()

    clock.advance(1)
    assert not guard.is_authenticated()


def test_session_lasts_twenty_four_hours(guard, store):
    guard.start_session("abc")

    assert store.read().expires_at == START_MS + DAY_MS


def test_require_session_runs_callback_when_unauthenticated(guard):
    redirects = []

    assert guard.require_session(lambda: redirects.append("login")) is False
    assert redirects == ["login"]


def test_require_session_passes_with_valid_session(guard):
    guard.start_session("abc")
    redirects = []

    assert guard.require_session(lambda: redirects.append("login")) is True
    assert redirects == []
