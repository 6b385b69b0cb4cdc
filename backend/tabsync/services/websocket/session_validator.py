"""
Debounced session re-validation for live connections
"""

import asyncio
import logging
from typing import Optional

from tabsync.core.config import settings
from tabsync.db.repositories import UserRepository
from .connection_manager import Connection, ConnectionManager
from .message_protocol import create_data_message, create_logout_message, create_valid_message

logger = logging.getLogger(__name__)


class SessionValidator:
    """
    Re-checks a connection's session once its message burst goes quiet.

    Every inbound message restarts the connection's timer, so a burst of N
    messages costs one store lookup. The check binds the connection to its
    user or tells the client to log out; it never gates individual actions.
    """

    def __init__(
        self,
        connection_manager: ConnectionManager,
        user_repository=UserRepository,
        delay_ms: Optional[int] = None
    ):
        self.connection_manager = connection_manager
        self.users = user_repository
        self.delay = (settings.SESSION_CHECK_DELAY_MS if delay_ms is None else delay_ms) / 1000

    def schedule(self, connection: Connection, username: str, session_token: str) -> asyncio.Task:
        """Cancel the pending check, if any, and start a fresh one"""
        self.cancel(connection)
        task = asyncio.create_task(self._check_after_delay(connection, username, session_token))
        connection.pending_check = task
        return task

    def cancel(self, connection: Connection):
        """Drop the pending check of a connection"""
        if connection.pending_check and not connection.pending_check.done():
            connection.pending_check.cancel()
        connection.pending_check = None

    async def _check_after_delay(self, connection: Connection, username: str, session_token: str):
        await asyncio.sleep(self.delay)

        # Past the quiet period a newer message must not cancel the running check
        if connection.pending_check is asyncio.current_task():
            connection.pending_check = None

        try:
            await self.check_session(connection, username, session_token)
        except Exception as e:
            logger.error(f"Session check failed for user {username}: {e}", exc_info=True)

    async def check_session(self, connection: Connection, username: str, session_token: str) -> bool:
        """Validate the presented token against the store, True when the connection got bound"""
        user = await self.users.find_by_username(username)

        if not user:
            logger.warning(f"User {username} not found, triggering logout.")
            self.connection_manager.unbind(connection)
            await connection.send_json(create_logout_message("User not found"))
            return False

        if user.session_token != session_token:
            logger.warning(f"Session mismatch detected for user {username}.")
            await self.users.clear_session_token(username, user.session_token)
            await self._evict(connection, username, "Session mismatch detected", "Session mismatch")
            return False

        if not user.session_token:
            logger.warning(f"Session token missing for user {username}, triggering logout.")
            await self._evict(connection, username, "Session token missing", "Session token missing")
            return False

        self.connection_manager.bind(connection, username)
        await connection.send_json(create_valid_message())
        return True

    async def _evict(self, connection: Connection, username: str, reply: str, notice: str):
        """Log out this connection and every other connection of the user"""
        self.connection_manager.unbind(connection)
        await connection.send_json(create_logout_message(reply))
        await self.connection_manager.broadcast(username, create_data_message("logout", message=notice))
        await self.connection_manager.unbind_user(username)
