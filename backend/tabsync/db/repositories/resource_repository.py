from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from tabsync.db.database import get_db
from tabsync.models.resources import Bookmark, HistoryEntry, Note, Record, Shortcut, Tab

R = TypeVar("R", bound=Record)


def _where(filters: Dict[str, Any]) -> tuple:
    clause = " AND ".join([f'"{k}" = ?' for k in filters.keys()])
    return clause, tuple(filters.values())


class ResourceRepository(Generic[R]):
    """Owner-scoped CRUD over one resource collection"""

    def __init__(self, model: Type[R]):
        self.model = model
        self.table = model.table

    async def create(self, record: R) -> R:
        """Insert a new record"""
        db = get_db()
        data = record.to_dict()

        columns = ", ".join([f'"{k}"' for k in data.keys()])
        placeholders = ", ".join(["?" for _ in data])

        await db.write(
            f"INSERT INTO {self.table} ({columns}) VALUES ({placeholders})",
            tuple(data.values())
        )
        return record

    async def find_all_by_owner(self, username: str, filters: Optional[Dict[str, Any]] = None) -> List[R]:
        """Get every record owned by username, optionally narrowed by column filters"""
        db = get_db()
        clause, params = _where({"username": username, **(filters or {})})
        rows = await db.fetch_all(
            f"SELECT * FROM {self.table} WHERE {clause} ORDER BY rowid",
            params
        )
        return [self.model.from_dict(row) for row in rows]

    async def find_by_id_and_owner(self, record_id: str, username: str) -> Optional[R]:
        """Get a single record only if it belongs to username"""
        db = get_db()
        row = await db.fetch_one(
            f"SELECT * FROM {self.table} WHERE id = ? AND username = ?",
            (record_id, username)
        )
        return self.model.from_dict(row) if row else None

    async def update_by_id_and_owner(
        self,
        record_id: str,
        username: str,
        patch: Dict[str, Any],
        filters: Optional[Dict[str, Any]] = None
    ) -> Optional[R]:
        """
        Apply patch to the record matching (id, username[, filters]).

        Returns the updated record, or None when nothing matched. Keys outside
        the model's patchable columns are ignored.
        """
        db = get_db()
        changes = {k: v for k, v in patch.items() if k in self.model.patchable}
        if "updated_at" in self.model.__dataclass_fields__:
            changes["updated_at"] = datetime.now().isoformat()

        clause, params = _where({"id": record_id, "username": username, **(filters or {})})

        if changes:
            set_clause = ", ".join([f'"{k}" = ?' for k in changes.keys()])
            rowcount = await db.write(
                f"UPDATE {self.table} SET {set_clause} WHERE {clause}",
                tuple(changes.values()) + params
            )
            if rowcount == 0:
                return None
            return await self.find_by_id_and_owner(record_id, username)

        row = await db.fetch_one(f"SELECT * FROM {self.table} WHERE {clause}", params)
        return self.model.from_dict(row) if row else None

    async def delete_by_id_and_owner(self, record_id: str, username: str) -> bool:
        """Delete a record only if it belongs to username"""
        db = get_db()
        rowcount = await db.write(
            f"DELETE FROM {self.table} WHERE id = ? AND username = ?",
            (record_id, username)
        )
        return rowcount > 0

    async def delete_all_by_owner(self, username: str) -> int:
        """Delete every record owned by username"""
        db = get_db()
        return await db.write(
            f"DELETE FROM {self.table} WHERE username = ?", (username,)
        )


# Repository instances
tab_repository = ResourceRepository(Tab)
shortcut_repository = ResourceRepository(Shortcut)
history_repository = ResourceRepository(HistoryEntry)
bookmark_repository = ResourceRepository(Bookmark)
note_repository = ResourceRepository(Note)

ALL_RESOURCE_REPOSITORIES = [
    tab_repository,
    shortcut_repository,
    history_repository,
    bookmark_repository,
    note_repository,
]
