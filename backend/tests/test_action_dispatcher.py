from __future__ import annotations

from tabsync.db.repositories import UserRepository, bookmark_repository, note_repository, tab_repository
from tabsync.models.user import User, UserStatus
from tabsync.services.websocket import ActionDispatcher, ActionType, ClientMessage, ConnectionManager


def _message(action: str, username: str = "alice", token: str = "tok-alice", **data) -> ClientMessage:
    return ClientMessage(action=action, sessionToken=token, username=username, data=data)


async def _seed_users():
    for name in ("alice", "bob"):
        await UserRepository.create(User(
            username=name,
            email=f"{name}@example.com",
            totp_secret="JBSWY3DPEHPK3PXP",
            user_status=UserStatus.VERIFIED,
            session_token=f"tok-{name}"
        ))


async def _setup(fake_socket):
    await _seed_users()
    manager = ConnectionManager()
    dispatcher = ActionDispatcher(manager)
    origin = await manager.connect(fake_socket())
    other_device = await manager.connect(fake_socket())
    manager.bind(origin, "alice")
    manager.bind(other_device, "alice")
    return dispatcher, origin, other_device


async def _send(dispatcher, connection, message: ClientMessage):
    return await dispatcher.dispatch(connection, ActionType(message.action), message)


def test_every_action_has_a_handler() -> None:
    dispatcher = ActionDispatcher(ConnectionManager())
    assert set(dispatcher._handlers) == set(ActionType)


def test_create_tab_is_broadcast_to_every_device(run, fake_socket) -> None:
    async def scenario():
        dispatcher, origin, other_device = await _setup(fake_socket)
        await _send(dispatcher, origin, _message("createTab", title="Docs", url="https://docs.python.org"))
        return origin, other_device

    origin, other_device = run(scenario())

    assert origin.websocket.sent == other_device.websocket.sent
    [message] = other_device.websocket.sent
    assert message["action"] == "tabCreated"
    assert message["tab"]["title"] == "Docs"
    assert message["tab"]["group"] == "default"
    assert message["tab"]["status"] == "active"
    assert message["tab"]["username"] == "alice"


def test_unbound_origin_does_not_see_its_own_broadcast(run, fake_socket) -> None:
    async def scenario():
        dispatcher, origin, other_device = await _setup(fake_socket)
        dispatcher.connection_manager.unbind(origin)
        await _send(dispatcher, origin, _message("createTab", title="Docs", url="https://docs.python.org"))
        return origin, other_device

    origin, other_device = run(scenario())

    assert origin.websocket.sent == []
    assert other_device.websocket.sent[0]["action"] == "tabCreated"


def test_closing_a_tab_twice_reports_not_found(run, fake_socket) -> None:
    async def scenario():
        dispatcher, origin, other_device = await _setup(fake_socket)
        result = await _send(dispatcher, origin, _message("createTab", title="A", url="https://a.example"))
        tab_id = result.broadcast["tab"]["id"]

        await _send(dispatcher, origin, _message("closeTab", id=tab_id))
        origin.websocket.sent.clear()
        other_device.websocket.sent.clear()
        await _send(dispatcher, origin, _message("closeTab", id=tab_id))

        stored = await tab_repository.find_by_id_and_owner(tab_id, "alice")
        return origin, other_device, stored

    origin, other_device, stored = run(scenario())

    assert origin.websocket.sent == [{"status": "error", "message": "Tab not found or unauthorized"}]
    assert other_device.websocket.sent == []
    assert stored.status.value == "closed"


def test_users_cannot_touch_each_others_records(run, fake_socket) -> None:
    async def scenario():
        dispatcher, origin, _ = await _setup(fake_socket)
        tab = (await _send(dispatcher, origin, _message("createTab", title="A", url="https://a.example"))).broadcast["tab"]
        note = (await _send(dispatcher, origin, _message("addNote", content="secret"))).reply["note"]

        intruder = await dispatcher.connection_manager.connect(fake_socket())
        dispatcher.connection_manager.bind(intruder, "bob")
        as_bob = dict(username="bob", token="tok-bob")
        await _send(dispatcher, intruder, _message("closeTab", id=tab["id"], **as_bob))
        await _send(dispatcher, intruder, _message("groupTab", id=tab["id"], newGroup="stolen", **as_bob))
        await _send(dispatcher, intruder, _message("updateNote", id=note["id"], content="pwned", **as_bob))
        await _send(dispatcher, intruder, _message("deleteNote", id=note["id"], **as_bob))
        await _send(dispatcher, intruder, _message("getTabs", **as_bob))

        stored_tab = await tab_repository.find_by_id_and_owner(tab["id"], "alice")
        stored_note = await note_repository.find_by_id_and_owner(note["id"], "alice")
        return intruder, stored_tab, stored_note

    intruder, stored_tab, stored_note = run(scenario())

    assert intruder.websocket.sent == [
        {"status": "error", "message": "Tab not found or unauthorized"},
        {"status": "error", "message": "Tab not found or unauthorized"},
        {"status": "error", "message": "Note not found or unauthorized"},
        {"status": "error", "message": "Note not found or unauthorized"},
        {"action": "restoreTabs", "tabs": []},
    ]
    assert stored_tab.status.value == "active"
    assert stored_tab.group == "default"
    assert stored_note.content == "secret"


def test_group_and_restore_tabs(run, fake_socket) -> None:
    async def scenario():
        dispatcher, origin, other_device = await _setup(fake_socket)
        first = (await _send(dispatcher, origin, _message("createTab", title="A", url="https://a.example"))).broadcast["tab"]
        second = (await _send(dispatcher, origin, _message("createTab", title="B", url="https://b.example"))).broadcast["tab"]

        grouped = await _send(dispatcher, origin, _message("groupTab", id=first["id"], newGroup="work"))
        await _send(dispatcher, origin, _message("closeTab", id=second["id"]))
        restored = await _send(dispatcher, origin, _message("getTabs"))
        return grouped, restored, other_device

    grouped, restored, other_device = run(scenario())

    assert grouped.broadcast["action"] == "tabGrouped"
    assert grouped.broadcast["newGroup"] == "work"
    assert [m["action"] for m in other_device.websocket.sent] == ["tabCreated", "tabCreated", "tabGrouped", "tabClosed"]

    tabs = restored.reply["tabs"]
    assert restored.reply["action"] == "restoreTabs"
    assert [(t["title"], t["group"]) for t in tabs] == [("A", "work")]


def test_missing_fields_are_rejected(run, fake_socket) -> None:
    async def scenario():
        dispatcher, origin, other_device = await _setup(fake_socket)
        await _send(dispatcher, origin, _message("createTab", url="https://a.example"))
        await _send(dispatcher, origin, _message("closeTab"))
        await _send(dispatcher, origin, _message("groupTab", id="abc"))
        await _send(dispatcher, origin, _message("deleteShortcut"))
        await _send(dispatcher, origin, _message("updateBookmark", title="x"))
        await _send(dispatcher, origin, _message("addNote", content="   "))
        return origin, other_device

    origin, other_device = run(scenario())

    assert [m["message"] for m in origin.websocket.sent] == [
        "Missing title",
        "Missing tabId",
        "Missing tabId or newGroup",
        "Missing shortcutId",
        "Missing bookmarkId",
        "Missing content",
    ]
    assert other_device.websocket.sent == []


def test_stale_token_gets_logout_and_no_side_effect(run, fake_socket) -> None:
    async def scenario():
        dispatcher, origin, other_device = await _setup(fake_socket)
        await _send(dispatcher, origin, _message("createTab", token="tok-stale", title="A", url="https://a.example"))
        tabs = await tab_repository.find_all_by_owner("alice")
        return origin, other_device, tabs

    origin, other_device, tabs = run(scenario())

    assert origin.websocket.sent == [{"status": "logout", "message": "Invalid session"}]
    assert other_device.websocket.sent == []
    assert tabs == []


def test_only_tab_actions_fan_out(run, fake_socket) -> None:
    async def scenario():
        dispatcher, origin, other_device = await _setup(fake_socket)
        shortcut = (await _send(dispatcher, origin, _message("addShortcut", title="Mail", url="https://mail.example"))).reply
        await _send(dispatcher, origin, _message("getShortcuts"))
        await _send(dispatcher, origin, _message("deleteShortcut", id=shortcut["shortcut"]["id"]))
        await _send(dispatcher, origin, _message("addHistory", title="Home", url="https://home.example", timestamp="2024-05-01T10:00:00Z"))
        await _send(dispatcher, origin, _message("getHistory"))
        await _send(dispatcher, origin, _message("deleteHistory"))
        await _send(dispatcher, origin, _message("getHistory"))
        return origin, other_device

    origin, other_device = run(scenario())

    actions = [m["action"] for m in origin.websocket.sent]
    assert actions == [
        "shortcutAdded",
        "shortcutsRetrieved",
        "shortcutDeleted",
        "historyAdded",
        "historyRetrieved",
        "historyDeleted",
        "historyRetrieved",
    ]
    assert other_device.websocket.sent == []

    history = origin.websocket.sent[4]["history"]
    assert history[0]["timestamp"].startswith("2024-05-01T10:00:00")
    assert origin.websocket.sent[-1]["history"] == []


def test_bookmark_update_ignores_unknown_fields(run, fake_socket) -> None:
    async def scenario():
        dispatcher, origin, _ = await _setup(fake_socket)
        added = (await _send(dispatcher, origin, _message("addBookmark", title="Py", url="https://python.org"))).reply["bookmark"]
        patch = ClientMessage(
            action="updateBookmark",
            sessionToken="tok-alice",
            username="alice",
            data={"id": added["id"], "title": "Python", "username": "bob", "status": "hacked"}
        )
        updated = await _send(dispatcher, origin, patch)
        stored = await bookmark_repository.find_by_id_and_owner(added["id"], "alice")
        listed = await _send(dispatcher, origin, _message("getBookmarks"))
        deleted = await _send(dispatcher, origin, _message("deleteBookmark", id=added["id"]))
        return updated, stored, listed, deleted

    updated, stored, listed, deleted = run(scenario())

    assert updated.reply["action"] == "bookmarkUpdated"
    assert updated.reply["bookmark"]["title"] == "Python"
    assert stored.username == "alice"
    assert stored.url == "https://python.org"
    assert [b["title"] for b in listed.reply["bookmarks"]] == ["Python"]
    assert deleted.reply == {"action": "bookmarkDeleted", "id": stored.id}


def test_note_lifecycle(run, fake_socket) -> None:
    async def scenario():
        dispatcher, origin, _ = await _setup(fake_socket)
        added = (await _send(dispatcher, origin, _message("addNote", content="draft"))).reply["note"]
        updated = await _send(dispatcher, origin, _message("updateNote", id=added["id"], content="final"))
        listed = await _send(dispatcher, origin, _message("getNotes"))
        deleted = await _send(dispatcher, origin, _message("deleteNote", id=added["id"]))
        again = await _send(dispatcher, origin, _message("deleteNote", id=added["id"]))
        return updated, listed, deleted, again

    updated, listed, deleted, again = run(scenario())

    assert updated.reply["note"]["content"] == "final"
    assert [n["content"] for n in listed.reply["notes"]] == ["final"]
    assert deleted.reply["action"] == "noteDeleted"
    assert again.reply == {"status": "error", "message": "Note not found or unauthorized"}


def test_store_failure_reports_generic_error(run, fake_socket) -> None:
    class BrokenNotes:
        async def create(self, record):
            raise RuntimeError("disk full")

    async def scenario():
        await _seed_users()
        manager = ConnectionManager()
        dispatcher = ActionDispatcher(manager, notes=BrokenNotes())
        origin = await manager.connect(fake_socket())
        manager.bind(origin, "alice")
        await _send(dispatcher, origin, _message("addNote", content="hello"))
        return origin

    origin = run(scenario())

    assert origin.websocket.sent == [{"status": "error", "message": "Failed to add note"}]
