import asyncio

from conftest import DAY_MS, START_MS, FakeDirectoryClient
from userdir.app import DirectoryApp
from userdir.controllers.edit_controller import EditPhase
from userdir.errors import NetworkError, ServerError, Unauthorized
from userdir.navigation import DIRECTORY_ROUTE, LOGIN_ROUTE, Navigator


def _app(store, fake_client, scheduler):
    return DirectoryApp(
        store=store, client=fake_client, navigator=Navigator(LOGIN_ROUTE), scheduler=scheduler
    )


def test_login_stores_day_long_credential_and_loads_first_page(store, fake_client, scheduler):
    app = _app(store, fake_client, scheduler)

    assert asyncio.run(app.sign_in("eve.holt@reqres.in", "cityslicka")) is True

    credential = store.read()
    assert credential.token == "abc"
    assert credential.expires_at == START_MS + DAY_MS
    assert app.navigator.history == [DIRECTORY_ROUTE]
    assert fake_client.calls[1] == ("list_page", 1, "abc")
    assert app.directory.current_page == 1


def test_login_errors_are_mapped_to_messages(store, scheduler):
    cases = [
        (Unauthorized("user not found", 400), "Invalid email or password"),
        (NetworkError("refused"), "Network error. Please check your connection"),
        (ServerError("boom", 500), "Login failed. Please try again."),
    ]
    for error, message in cases:
        client = FakeDirectoryClient()
        client.errors["login"] = error
        app = _app(store, client, scheduler)

        assert asyncio.run(app.sign_in("eve.holt@reqres.in", "cityslicka")) is False

        assert app.login.error == message
        assert store.read() is None
        assert app.navigator.current_route == LOGIN_ROUTE


def test_login_form_checks_run_before_any_request(store, fake_client, scheduler):
    app = _app(store, fake_client, scheduler)

    assert asyncio.run(app.sign_in("eve.holt@reqres.in", "123")) is False

    assert app.login.error == "Password must be at least 6 characters"
    assert fake_client.calls == []


def test_start_with_existing_session_goes_to_directory(store, fake_client, scheduler):
    store.save("abc", DAY_MS)
    app = _app(store, fake_client, scheduler)

    asyncio.run(app.start())

    assert app.in_directory
    assert fake_client.calls == [("list_page", 1, "abc")]


def test_start_without_session_stays_on_login(store, fake_client, scheduler):
    app = _app(store, fake_client, scheduler)

    asyncio.run(app.start())

    assert not app.in_directory
    assert fake_client.calls == []


def test_list_unauthorized_redirects_to_login_from_any_page(store, fake_client, scheduler):
    store.save("abc", DAY_MS)
    app = _app(store, fake_client, scheduler)
    asyncio.run(app.start())

    fake_client.errors["list_page"] = Unauthorized("expired", 401)
    asyncio.run(app.change_page(2))

    assert store.read() is None
    assert app.navigator.current_route == LOGIN_ROUTE


def test_page_change_closes_open_editor(store, fake_client, scheduler):
    store.save("abc", DAY_MS)
    app = _app(store, fake_client, scheduler)
    asyncio.run(app.start())
    editor = app.open_editor(2)

    asyncio.run(app.change_page(2))

    assert editor.phase is EditPhase.CLOSED
    assert app.editor is None
    assert [r.id for r in app.directory.records] == [4, 5, 6]


def test_next_and_previous_close_open_editor(store, fake_client, scheduler):
    store.save("abc", DAY_MS)
    app = _app(store, fake_client, scheduler)
    asyncio.run(app.start())
    first = app.open_editor(1)

    assert asyncio.run(app.next_page()) is True
    assert first.phase is EditPhase.CLOSED
    assert app.directory.current_page == 2

    second = app.open_editor(5)
    assert asyncio.run(app.previous_page()) is True
    assert second.phase is EditPhase.CLOSED
    assert app.editor is None
    assert [r.id for r in app.directory.records] == [1, 2, 3]


def test_open_editor_for_unknown_record_returns_none(store, fake_client, scheduler):
    store.save("abc", DAY_MS)
    app = _app(store, fake_client, scheduler)
    asyncio.run(app.start())

    assert app.open_editor(99) is None


def test_edit_round_trip_through_app(store, fake_client, scheduler):
    store.save("abc", DAY_MS)
    app = _app(store, fake_client, scheduler)
    asyncio.run(app.start())

    editor = app.open_editor(1)
    editor.update_field("last_name", "Bluth")
    asyncio.run(editor.submit())
    scheduler.handles[0].fire()

    assert app.editor is None
    assert app.directory.find(1).last_name == "Bluth"
    assert fake_client.calls[-1] == (
        "update_record",
        1,
        {
            "first_name": "First1",
            "last_name": "Bluth",
            "email": "user1@reqres.in",
            "avatar": "https://reqres.in/img/faces/1-image.jpg",
        },
        "abc",
    )


def test_logout_clears_session(store, fake_client, scheduler):
    store.save("abc", DAY_MS)
    app = _app(store, fake_client, scheduler)
    asyncio.run(app.start())
    app.open_editor(1)

    app.logout()

    assert store.read() is None
    assert app.editor is None
    assert app.navigator.current_route == LOGIN_ROUTE
