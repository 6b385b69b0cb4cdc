"""
WebSocket connection registry and per-user broadcast
"""

import asyncio
import logging
from typing import Dict, Optional, List, Any
from datetime import datetime
import uuid
from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Connection:
    """Represents a WebSocket connection"""

    def __init__(self, websocket: WebSocket, connection_id: str, client_info: Dict[str, Any] = None):
        self.websocket = websocket
        self.connection_id = connection_id
        self.connected_at = datetime.now()
        self.client_info = client_info or {}
        self.active = True

        # Set once the session validator confirms the session
        self.username: Optional[str] = None

        # At most one outstanding debounced session check
        self.pending_check: Optional[asyncio.Task] = None

        # Outbound writes are serialized so each peer sees messages in send order
        self._send_lock = asyncio.Lock()

    @property
    def is_bound(self) -> bool:
        return self.username is not None

    async def send_json(self, data: dict) -> bool:
        """Send JSON data, returns False when the frame could not be delivered"""
        if not self.active:
            return False

        async with self._send_lock:
            try:
                await self.websocket.send_json(data)
                return True
            except Exception as e:
                logger.error(f"Failed to send JSON to connection {self.connection_id}: {e}")
                self.active = False
                return False


class ConnectionManager:
    """Registry of live connections, tagged with their bound username"""

    def __init__(self):
        self.active_connections: Dict[str, Connection] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, client_info: Dict[str, Any] = None) -> Connection:
        """Accept and register a new connection"""
        await websocket.accept()

        connection = Connection(websocket, str(uuid.uuid4()), client_info)
        await self.register(connection)

        logger.info(f"WebSocket connection established: {connection.connection_id}")
        return connection

    async def register(self, connection: Connection):
        async with self._lock:
            self.active_connections[connection.connection_id] = connection

    async def unregister(self, connection: Connection):
        """Remove a connection and mark it closed"""
        async with self._lock:
            self.active_connections.pop(connection.connection_id, None)
        connection.active = False
        logger.info(f"WebSocket connection closed: {connection.connection_id}")

    def bind(self, connection: Connection, username: str):
        """Tag a connection with its confirmed username"""
        connection.username = username

    def unbind(self, connection: Connection):
        connection.username = None

    async def unbind_user(self, username: str) -> int:
        """Unbind every connection currently bound to username"""
        connections = await self.get_user_connections(username)
        for connection in connections:
            self.unbind(connection)
        return len(connections)

    async def get_user_connections(self, username: str) -> List[Connection]:
        """Stable snapshot of open connections bound to username"""
        async with self._lock:
            return [
                connection for connection in self.active_connections.values()
                if connection.active and connection.username == username
            ]

    async def broadcast(self, username: str, payload: dict) -> int:
        """
        Deliver payload to every open connection bound to username.

        Failures are isolated per connection and only logged. Returns the
        number of connections that received the payload.
        """
        recipients = await self.get_user_connections(username)
        if not recipients:
            return 0

        results = await asyncio.gather(
            *(connection.send_json(payload) for connection in recipients),
            return_exceptions=True
        )

        delivered = 0
        for connection, result in zip(recipients, results):
            if result is True:
                delivered += 1
            elif isinstance(result, Exception):
                logger.error(f"Error broadcasting to user {username} on {connection.connection_id}: {result}")

        return delivered

    def get_connection_count(self) -> int:
        """Get number of active connections"""
        return len(self.active_connections)

    def get_bound_user_count(self) -> int:
        """Get number of distinct users with at least one bound connection"""
        return len({
            connection.username for connection in self.active_connections.values()
            if connection.username is not None
        })

    async def cleanup(self):
        """Close all connections"""
        async with self._lock:
            connections = list(self.active_connections.values())
            self.active_connections.clear()

        for connection in connections:
            connection.active = False
            try:
                await connection.websocket.close()
            except Exception as e:
                logger.debug(f"Error closing connection {connection.connection_id}: {e}")

        logger.info("ConnectionManager cleaned up")
