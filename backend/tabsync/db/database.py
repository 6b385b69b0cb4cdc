import aiosqlite
import logging
from typing import Any, Dict, List, Optional

from tabsync.core.config import settings
from tabsync.db.schema import ALL_TABLES, INDEXES

logger = logging.getLogger(__name__)


class Database:
    """
    One shared aiosqlite connection for the process.

    Handlers for different sockets run concurrently; aiosqlite funnels their
    statements through a single worker thread, so each write and its commit
    are issued back to back via ``write``.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or settings.database_path
        self._connection: Optional[aiosqlite.Connection] = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self):
        """Open the connection if it is not open yet"""
        if self._connection:
            return

        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA busy_timeout=5000")

    async def disconnect(self):
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def execute(self, query: str, params: tuple = ()) -> aiosqlite.Cursor:
        if not self._connection:
            await self.connect()
        return await self._connection.execute(query, params)

    async def write(self, query: str, params: tuple = ()) -> int:
        """Run an INSERT/UPDATE/DELETE and commit it, returning the affected row count"""
        cursor = await self.execute(query, params)
        await self._connection.commit()
        return cursor.rowcount

    async def fetch_one(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        cursor = await self.execute(query, params)
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def fetch_all(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        cursor = await self.execute(query, params)
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def apply_schema(self):
        """Create every table and index that does not exist yet"""
        for statement in ALL_TABLES + INDEXES:
            await self.execute(statement)
        await self._connection.commit()


# Global database instance
db = Database()

def get_db() -> Database:
    """Get the shared database instance"""
    return db


async def init_db():
    """Open the store and make sure the schema exists; failures abort startup"""
    await db.connect()
    await db.apply_schema()
    logger.info(f"Database initialized at {db.db_path}")
