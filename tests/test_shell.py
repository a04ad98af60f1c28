import asyncio

from conftest import DAY_MS
from userdir.app import DirectoryApp
from userdir.navigation import LOGIN_ROUTE, Navigator
from userdir.shell import ConsoleShell


def _shell(store, fake_client, scheduler, answers=()):
    app = DirectoryApp(
        store=store, client=fake_client, navigator=Navigator(LOGIN_ROUTE), scheduler=scheduler
    )
    lines = []
    replies = list(answers)
    shell = ConsoleShell(
        app,
        output=lines.append,
        prompt=lambda _text: replies.pop(0),
        secret_prompt=lambda _text: "cityslicka",
    )
    return shell, lines


def test_login_then_list_and_search(store, fake_client, scheduler):
    shell, lines = _shell(store, fake_client, scheduler)

    async def scenario():
        await shell.handle("login eve.holt@reqres.in")
        lines.clear()
        await shell.handle("search user3")

    asyncio.run(scenario())

    assert "[3] First3 Last3 <user3@reqres.in>" in lines
    assert not any(line.startswith("[1]") for line in lines)
    assert any(line.startswith("Page 1 of 2") for line in lines)


def test_next_and_prev_commands_change_page_and_close_editor(store, fake_client, scheduler):
    shell, lines = _shell(store, fake_client, scheduler)

    async def scenario():
        await shell.handle("login eve.holt@reqres.in")
        await shell.handle("edit 2")
        lines.clear()
        await shell.handle("next")

    asyncio.run(scenario())

    assert shell.app.editor is None
    assert "[4] First4 Last4 <user4@reqres.in>" in lines
    assert any(line.startswith("Page 2 of 2") for line in lines)

    lines.clear()
    asyncio.run(shell.handle("prev"))

    assert any(line.startswith("Page 1 of 2") for line in lines)


def test_directory_commands_require_session(store, fake_client, scheduler):
    shell, lines = _shell(store, fake_client, scheduler)

    assert asyncio.run(shell.handle("list")) is True

    assert lines == ["Your session has expired. Please log in again."]


def test_edit_save_and_delete_with_confirmation(store, fake_client, scheduler):
    store.save("abc", DAY_MS)
    shell, lines = _shell(store, fake_client, scheduler, answers=["y"])

    async def scenario():
        await shell.app.start()
        await shell.handle("edit 2")
        await shell.handle('set first_name "Janet"')
        await shell.handle("save")
        scheduler.handles[0].fire()
        await shell.handle("edit 3")
        await shell.handle("delete")

    asyncio.run(scenario())

    assert shell.app.directory.find(2).first_name == "Janet"
    assert shell.app.directory.find(3) is None
    assert "User deleted successfully." in lines


def test_quit_stops_the_loop(store, fake_client, scheduler):
    shell, _ = _shell(store, fake_client, scheduler)

    assert asyncio.run(shell.handle("quit")) is False
