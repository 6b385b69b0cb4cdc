from .user_repository import UserRepository
from .resource_repository import (
    ResourceRepository,
    tab_repository,
    shortcut_repository,
    history_repository,
    bookmark_repository,
    note_repository,
    ALL_RESOURCE_REPOSITORIES
)

__all__ = [
    "UserRepository",
    "ResourceRepository",
    "tab_repository",
    "shortcut_repository",
    "history_repository",
    "bookmark_repository",
    "note_repository",
    "ALL_RESOURCE_REPOSITORIES"
]
