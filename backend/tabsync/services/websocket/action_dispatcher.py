"""
Action dispatch for the sync channel

Each handler receives an already re-authenticated user, performs exactly one
store operation scoped to that user and returns an ActionResult. Delivery of
the result is done by the dispatcher so handlers stay free of transport
concerns.
"""

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from tabsync.db.repositories import (
    UserRepository,
    tab_repository,
    shortcut_repository,
    history_repository,
    bookmark_repository,
    note_repository,
)
from tabsync.models.resources import Bookmark, HistoryEntry, Note, Shortcut, Tab, TabStatus
from tabsync.models.user import User
from .connection_manager import Connection, ConnectionManager
from .message_protocol import (
    ActionResult,
    ActionType,
    ClientMessage,
    create_data_message,
    create_error_message,
    create_logout_message,
)

logger = logging.getLogger(__name__)

Handler = Callable[[User, Dict[str, Any]], Awaitable[ActionResult]]

# Generic error reported to the client when a handler fails unexpectedly
FAILURE_MESSAGES: Dict[ActionType, str] = {
    ActionType.CREATE_TAB: "Failed to create tab",
    ActionType.CLOSE_TAB: "Failed to close tab",
    ActionType.GROUP_TAB: "Failed to group tab",
    ActionType.GET_TABS: "Failed to get tabs",
    ActionType.ADD_SHORTCUT: "Failed to add shortcut",
    ActionType.GET_SHORTCUTS: "Failed to get shortcuts",
    ActionType.DELETE_SHORTCUT: "Failed to delete shortcut",
    ActionType.ADD_HISTORY: "Failed to add history",
    ActionType.GET_HISTORY: "Failed to get history",
    ActionType.DELETE_HISTORY: "Failed to delete history",
    ActionType.ADD_BOOKMARK: "Failed to add bookmark",
    ActionType.UPDATE_BOOKMARK: "Failed to update bookmark",
    ActionType.DELETE_BOOKMARK: "Failed to delete bookmark",
    ActionType.GET_BOOKMARKS: "Failed to get bookmarks",
    ActionType.ADD_NOTE: "Failed to add note",
    ActionType.UPDATE_NOTE: "Failed to update note",
    ActionType.DELETE_NOTE: "Failed to delete note",
    ActionType.GET_NOTES: "Failed to get notes",
}


def _missing(data: Dict[str, Any], *names: str) -> Optional[str]:
    """First required field that is absent or empty"""
    for name in names:
        value = data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            return name
    return None


def _error(message: str) -> ActionResult:
    return ActionResult(reply=create_error_message(message))


def _not_found(kind: str) -> ActionResult:
    return _error(f"{kind} not found or unauthorized")


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


class ActionDispatcher:
    """Maps every ActionType onto its handler"""

    def __init__(
        self,
        connection_manager: ConnectionManager,
        user_repository=UserRepository,
        tabs=tab_repository,
        shortcuts=shortcut_repository,
        history=history_repository,
        bookmarks=bookmark_repository,
        notes=note_repository
    ):
        self.connection_manager = connection_manager
        self.users = user_repository
        self.tabs = tabs
        self.shortcuts = shortcuts
        self.history = history
        self.bookmarks = bookmarks
        self.notes = notes

        self._handlers: Dict[ActionType, Handler] = {
            ActionType.CREATE_TAB: self.create_tab,
            ActionType.CLOSE_TAB: self.close_tab,
            ActionType.GROUP_TAB: self.group_tab,
            ActionType.GET_TABS: self.get_tabs,
            ActionType.ADD_SHORTCUT: self.add_shortcut,
            ActionType.GET_SHORTCUTS: self.get_shortcuts,
            ActionType.DELETE_SHORTCUT: self.delete_shortcut,
            ActionType.ADD_HISTORY: self.add_history,
            ActionType.GET_HISTORY: self.get_history,
            ActionType.DELETE_HISTORY: self.delete_history,
            ActionType.ADD_BOOKMARK: self.add_bookmark,
            ActionType.UPDATE_BOOKMARK: self.update_bookmark,
            ActionType.DELETE_BOOKMARK: self.delete_bookmark,
            ActionType.GET_BOOKMARKS: self.get_bookmarks,
            ActionType.ADD_NOTE: self.add_note,
            ActionType.UPDATE_NOTE: self.update_note,
            ActionType.DELETE_NOTE: self.delete_note,
            ActionType.GET_NOTES: self.get_notes,
        }

        unhandled = set(ActionType) - set(self._handlers)
        if unhandled:
            raise RuntimeError(f"No handler registered for: {sorted(a.value for a in unhandled)}")

    async def dispatch(self, connection: Connection, action: ActionType, message: ClientMessage) -> ActionResult:
        """Authorize, run the handler for action and deliver its result"""
        username = message.username
        try:
            user = await self.users.find_by_username_and_token(username, message.session_token)
            if not user:
                result = ActionResult(reply=create_logout_message("Invalid session"))
            else:
                result = await self._handlers[action](user, message.data)
                result.username = user.username
        except Exception as e:
            logger.error(f"Error handling {action.value} for user {username}: {e}", exc_info=True)
            result = _error(FAILURE_MESSAGES[action])

        await self.deliver(connection, result)
        return result

    async def deliver(self, connection: Connection, result: ActionResult):
        """Send the reply to the origin and the broadcast to the user's connections"""
        if result.reply is not None:
            if not await connection.send_json(result.reply):
                logger.warning(f"Reply undeliverable on closed connection {connection.connection_id}")
        if result.broadcast is not None and result.username:
            await self.connection_manager.broadcast(result.username, result.broadcast)

    # ------------------------------------------------------------------
    # Tabs
    # ------------------------------------------------------------------
    async def create_tab(self, user: User, data: Dict[str, Any]) -> ActionResult:
        field = _missing(data, "title", "url")
        if field:
            return _error(f"Missing {field}")

        tab = Tab(
            username=user.username,
            title=data["title"],
            url=data["url"],
            group=data.get("group") or "default",
            status=TabStatus.ACTIVE
        )
        await self.tabs.create(tab)
        logger.info(f"Tab created for user {user.username}: {tab.id}")
        return ActionResult(broadcast=create_data_message("tabCreated", tab=tab.to_payload()))

    async def close_tab(self, user: User, data: Dict[str, Any]) -> ActionResult:
        tab_id = data.get("id")
        if not tab_id:
            logger.warning(f"Missing tabId for closeTab action from user {user.username}.")
            return _error("Missing tabId")

        tab = await self.tabs.update_by_id_and_owner(
            tab_id, user.username,
            {"status": TabStatus.CLOSED.value},
            filters={"status": TabStatus.ACTIVE.value}
        )
        if not tab:
            logger.warning(f"Tab not found or unauthorized for user {user.username}: {tab_id}")
            return _not_found("Tab")

        logger.info(f"Tab closed for user {user.username}: {tab_id}")
        return ActionResult(broadcast=create_data_message("tabClosed", tabId=tab_id))

    async def group_tab(self, user: User, data: Dict[str, Any]) -> ActionResult:
        tab_id = data.get("id")
        new_group = data.get("newGroup")
        if not tab_id or not new_group:
            logger.warning(f"Missing tabId or newGroup for groupTab action from user {user.username}.")
            return _error("Missing tabId or newGroup")

        tab = await self.tabs.update_by_id_and_owner(tab_id, user.username, {"group": new_group})
        if not tab:
            logger.warning(f"Tab not found or unauthorized for user {user.username}: {tab_id}")
            return _not_found("Tab")

        logger.info(f"Tab grouped for user {user.username}: {tab_id}, Group: {new_group}")
        return ActionResult(broadcast=create_data_message("tabGrouped", tabId=tab_id, newGroup=new_group))

    async def get_tabs(self, user: User, data: Dict[str, Any]) -> ActionResult:
        tabs = await self.tabs.find_all_by_owner(user.username, {"status": TabStatus.ACTIVE.value})
        return ActionResult(reply=create_data_message("restoreTabs", tabs=[t.to_payload() for t in tabs]))

    # ------------------------------------------------------------------
    # Shortcuts
    # ------------------------------------------------------------------
    async def add_shortcut(self, user: User, data: Dict[str, Any]) -> ActionResult:
        field = _missing(data, "title", "url")
        if field:
            return _error(f"Missing {field}")

        shortcut = Shortcut(username=user.username, title=data["title"], url=data["url"])
        await self.shortcuts.create(shortcut)
        logger.info(f"Shortcut added for user {user.username}: {shortcut.id}")
        return ActionResult(reply=create_data_message("shortcutAdded", shortcut=shortcut.to_payload()))

    async def get_shortcuts(self, user: User, data: Dict[str, Any]) -> ActionResult:
        shortcuts = await self.shortcuts.find_all_by_owner(user.username)
        return ActionResult(reply=create_data_message("shortcutsRetrieved", shortcuts=[s.to_payload() for s in shortcuts]))

    async def delete_shortcut(self, user: User, data: Dict[str, Any]) -> ActionResult:
        shortcut_id = data.get("id")
        if not shortcut_id:
            return _error("Missing shortcutId")

        if not await self.shortcuts.delete_by_id_and_owner(shortcut_id, user.username):
            logger.warning(f"Shortcut not found for user {user.username}: {shortcut_id}")
            return _not_found("Shortcut")

        logger.info(f"Shortcut deleted for user {user.username}: {shortcut_id}")
        return ActionResult(reply=create_data_message("shortcutDeleted", id=shortcut_id))

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    async def add_history(self, user: User, data: Dict[str, Any]) -> ActionResult:
        field = _missing(data, "title", "url")
        if field:
            return _error(f"Missing {field}")

        entry = HistoryEntry(
            username=user.username,
            title=data["title"],
            url=data["url"],
            timestamp=_parse_timestamp(data.get("timestamp"))
        )
        await self.history.create(entry)
        logger.info(f"History added for user {user.username}")
        return ActionResult(reply=create_data_message("historyAdded", history=entry.to_payload()))

    async def get_history(self, user: User, data: Dict[str, Any]) -> ActionResult:
        entries = await self.history.find_all_by_owner(user.username)
        return ActionResult(reply=create_data_message("historyRetrieved", history=[h.to_payload() for h in entries]))

    async def delete_history(self, user: User, data: Dict[str, Any]) -> ActionResult:
        deleted = await self.history.delete_all_by_owner(user.username)
        logger.info(f"History deleted for user {user.username} ({deleted} entries)")
        return ActionResult(reply=create_data_message("historyDeleted"))

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------
    async def add_bookmark(self, user: User, data: Dict[str, Any]) -> ActionResult:
        field = _missing(data, "title", "url")
        if field:
            return _error(f"Missing {field}")

        bookmark = Bookmark(username=user.username, title=data["title"], url=data["url"])
        await self.bookmarks.create(bookmark)
        logger.info(f"Bookmark added for user {user.username}: {bookmark.id}")
        return ActionResult(reply=create_data_message("bookmarkAdded", bookmark=bookmark.to_payload()))

    async def update_bookmark(self, user: User, data: Dict[str, Any]) -> ActionResult:
        bookmark_id = data.get("id")
        if not bookmark_id:
            return _error("Missing bookmarkId")

        bookmark = await self.bookmarks.update_by_id_and_owner(bookmark_id, user.username, data)
        if not bookmark:
            logger.warning(f"Bookmark not found for user {user.username}: {bookmark_id}")
            return _not_found("Bookmark")

        logger.info(f"Bookmark updated for user {user.username}: {bookmark_id}")
        return ActionResult(reply=create_data_message("bookmarkUpdated", bookmark=bookmark.to_payload()))

    async def delete_bookmark(self, user: User, data: Dict[str, Any]) -> ActionResult:
        bookmark_id = data.get("id")
        if not bookmark_id:
            return _error("Missing bookmarkId")

        if not await self.bookmarks.delete_by_id_and_owner(bookmark_id, user.username):
            logger.warning(f"Bookmark not found for user {user.username}: {bookmark_id}")
            return _not_found("Bookmark")

        logger.info(f"Bookmark deleted for user {user.username}: {bookmark_id}")
        return ActionResult(reply=create_data_message("bookmarkDeleted", id=bookmark_id))

    async def get_bookmarks(self, user: User, data: Dict[str, Any]) -> ActionResult:
        bookmarks = await self.bookmarks.find_all_by_owner(user.username)
        return ActionResult(reply=create_data_message("bookmarksRetrieved", bookmarks=[b.to_payload() for b in bookmarks]))

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------
    async def add_note(self, user: User, data: Dict[str, Any]) -> ActionResult:
        if _missing(data, "content"):
            return _error("Missing content")

        note = Note(username=user.username, content=data["content"])
        await self.notes.create(note)
        logger.info(f"Note added for user {user.username}: {note.id}")
        return ActionResult(reply=create_data_message("noteAdded", note=note.to_payload()))

    async def update_note(self, user: User, data: Dict[str, Any]) -> ActionResult:
        note_id = data.get("id")
        if not note_id:
            return _error("Missing noteId")

        note = await self.notes.update_by_id_and_owner(note_id, user.username, data)
        if not note:
            logger.warning(f"Note not found for user {user.username}: {note_id}")
            return _not_found("Note")

        logger.info(f"Note updated for user {user.username}: {note_id}")
        return ActionResult(reply=create_data_message("noteUpdated", note=note.to_payload()))

    async def delete_note(self, user: User, data: Dict[str, Any]) -> ActionResult:
        note_id = data.get("id")
        if not note_id:
            return _error("Missing noteId")

        if not await self.notes.delete_by_id_and_owner(note_id, user.username):
            logger.warning(f"Note not found for user {user.username}: {note_id}")
            return _not_found("Note")

        logger.info(f"Note deleted for user {user.username}: {note_id}")
        return ActionResult(reply=create_data_message("noteDeleted", id=note_id))

    async def get_notes(self, user: User, data: Dict[str, Any]) -> ActionResult:
        notes = await self.notes.find_all_by_owner(user.username)
        return ActionResult(reply=create_data_message("notesRetrieved", notes=[n.to_payload() for n in notes]))
