from .user import User, UserStatus
from .resources import Tab, TabStatus, Shortcut, HistoryEntry, Bookmark, Note

__all__ = [
    "User",
    "UserStatus",
    "Tab",
    "TabStatus",
    "Shortcut",
    "HistoryEntry",
    "Bookmark",
    "Note"
]
