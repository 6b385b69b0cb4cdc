from __future__ import annotations

from tabsync.db.repositories import UserRepository, note_repository, shortcut_repository, tab_repository
from tabsync.models.resources import Note, Shortcut, Tab, TabStatus
from tabsync.models.user import User, UserStatus


def _user(username: str = "alice", token: str = "tok") -> User:
    return User(username=username, email=f"{username}@example.com", totp_secret="JBSWY3DPEHPK3PXP", session_token=token)


def test_user_lookups_save_and_session_start(run) -> None:
    async def scenario():
        user = await UserRepository.create(_user())
        by_name = await UserRepository.find_by_username("alice")
        by_pair = await UserRepository.find_by_username_and_token("alice", "tok")
        wrong_pair = await UserRepository.find_by_username_and_token("alice", "other")
        by_token = await UserRepository.find_by_session_token("tok")

        user.email = "alice@example.org"
        await UserRepository.save(user)
        await UserRepository.start_session(user.username, "tok-2")
        saved = await UserRepository.find_by_username("alice")
        exists = await UserRepository.exists("someone", "alice@example.org")
        return by_name, by_pair, wrong_pair, by_token, saved, exists

    by_name, by_pair, wrong_pair, by_token, saved, exists = run(scenario())

    assert by_name.email == "alice@example.com"
    assert by_pair.username == "alice"
    assert wrong_pair is None
    assert by_token.username == "alice"
    assert saved.email == "alice@example.org"
    assert saved.session_token == "tok-2"
    assert saved.user_status == UserStatus.VERIFIED
    assert exists


def test_resource_queries_are_scoped_to_owner(run) -> None:
    async def scenario():
        mine = await tab_repository.create(Tab(username="alice", title="A", url="https://a.example"))
        await tab_repository.create(Tab(username="bob", title="B", url="https://b.example"))

        alice_tabs = await tab_repository.find_all_by_owner("alice")
        stolen = await tab_repository.update_by_id_and_owner(mine.id, "bob", {"group": "x"})
        deleted_by_bob = await tab_repository.delete_by_id_and_owner(mine.id, "bob")
        still_there = await tab_repository.find_by_id_and_owner(mine.id, "alice")
        return alice_tabs, stolen, deleted_by_bob, still_there

    alice_tabs, stolen, deleted_by_bob, still_there = run(scenario())

    assert [t.title for t in alice_tabs] == ["A"]
    assert stolen is None
    assert deleted_by_bob is False
    assert still_there.group == "default"


def test_update_respects_filters_and_patchable_columns(run) -> None:
    async def scenario():
        tab = await tab_repository.create(Tab(username="alice", title="A", url="https://a.example"))
        closed = await tab_repository.update_by_id_and_owner(
            tab.id, "alice", {"status": TabStatus.CLOSED.value, "title": "renamed"},
            filters={"status": TabStatus.ACTIVE.value}
        )
        closed_again = await tab_repository.update_by_id_and_owner(
            tab.id, "alice", {"status": TabStatus.CLOSED.value},
            filters={"status": TabStatus.ACTIVE.value}
        )
        note = await note_repository.create(Note(username="alice", content="hi"))
        untouched = await note_repository.update_by_id_and_owner(note.id, "alice", {"username": "bob"})
        return closed, closed_again, untouched

    closed, closed_again, untouched = run(scenario())

    assert closed.status == TabStatus.CLOSED
    assert closed.title == "A"
    assert closed.updated_at >= closed.created_at
    assert closed_again is None
    assert untouched.username == "alice"
    assert untouched.content == "hi"


def test_delete_all_by_owner_counts_rows(run) -> None:
    async def scenario():
        for n in range(3):
            await shortcut_repository.create(Shortcut(username="alice", title=f"s{n}", url="https://s.example"))
        await shortcut_repository.create(Shortcut(username="bob", title="b", url="https://b.example"))
        deleted = await shortcut_repository.delete_all_by_owner("alice")
        remaining = await shortcut_repository.find_all_by_owner("bob")
        return deleted, remaining

    deleted, remaining = run(scenario())

    assert deleted == 3
    assert [s.title for s in remaining] == ["b"]


def test_record_payload_uses_camel_case() -> None:
    tab = Tab(username="alice", title="A", url="https://a.example")
    payload = tab.to_payload()

    assert payload["createdAt"] == tab.created_at.isoformat()
    assert payload["updatedAt"] == payload["createdAt"]
    assert payload["status"] == "active"
    assert len(payload["id"]) == 32


def test_stale_session_clear_keeps_newer_token(run) -> None:
    async def scenario():
        await UserRepository.create(_user(token="tok-1"))
        await UserRepository.start_session("alice", "tok-2")
        stale_cleared = await UserRepository.clear_session_token("alice", "tok-1")
        after_stale = await UserRepository.find_by_username("alice")
        current_cleared = await UserRepository.clear_session_token("alice", "tok-2")
        after_current = await UserRepository.find_by_username("alice")
        return stale_cleared, after_stale, current_cleared, after_current

    stale_cleared, after_stale, current_cleared, after_current = run(scenario())

    assert stale_cleared is False
    assert after_stale.session_token == "tok-2"
    assert current_cleared is True
    assert after_current.session_token is None


def test_ban_does_not_restore_an_old_session(run) -> None:
    async def scenario():
        # Row read before a new login was issued
        stale = await UserRepository.create(_user(token="tok-1"))
        await UserRepository.start_session("alice", "tok-2")
        await UserRepository.set_ban(stale.username, "10.0.0.9", 1_000)
        return await UserRepository.find_by_username("alice")

    user = run(scenario())

    assert user.session_token == "tok-2"
    assert user.ban_ip == "10.0.0.9"
    assert user.banned_until == 1_000
