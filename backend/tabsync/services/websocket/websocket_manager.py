"""
Main WebSocket manager for the sync channel
"""

import asyncio
import logging
from typing import Optional, Dict, Any, Set
from fastapi import WebSocket, WebSocketDisconnect

from .action_dispatcher import ActionDispatcher
from .connection_manager import ConnectionManager, Connection
from .message_protocol import create_error_message, parse_client_message
from .session_validator import SessionValidator

logger = logging.getLogger(__name__)


def frame_text(frame: Dict[str, Any]) -> Optional[str]:
    """Text of an inbound frame; binary frames must hold UTF-8 JSON"""
    if frame.get("text") is not None:
        return frame["text"]
    data = frame.get("bytes")
    if data is None:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


class WebSocketManager:
    """Owns the connection registry and wires validator and dispatcher to it"""

    def __init__(
        self,
        connection_manager: Optional[ConnectionManager] = None,
        validator: Optional[SessionValidator] = None,
        dispatcher: Optional[ActionDispatcher] = None
    ):
        self.connection_manager = connection_manager or ConnectionManager()
        self.validator = validator or SessionValidator(self.connection_manager)
        self.dispatcher = dispatcher or ActionDispatcher(self.connection_manager)

        # Handlers run as independent tasks; keep references until they finish
        self._handler_tasks: Set[asyncio.Task] = set()

    async def handle_connection(self, websocket: WebSocket, client_info: Dict[str, Any] = None):
        """Handle a new WebSocket connection until the client goes away"""
        connection = await self.connection_manager.connect(websocket, client_info)

        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(frame.get("code", 1000))

                try:
                    await self.handle_client_message(connection, frame_text(frame))
                except Exception as e:
                    # A bad frame must not end the connection
                    logger.error(f"Error handling frame on {connection.connection_id}: {e}", exc_info=True)
                    await connection.send_json(create_error_message("Invalid message format"))

        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected: {connection.connection_id}")
        except Exception as e:
            logger.error(f"WebSocket error on {connection.connection_id}: {e}", exc_info=True)
        finally:
            self.validator.cancel(connection)
            await self.connection_manager.unregister(connection)

    async def handle_client_message(self, connection: Connection, raw: Optional[str]) -> Optional[asyncio.Task]:
        """
        Handle one inbound frame.

        Returns the handler task so callers may await it; the receive loop
        does not, which lets the next frame be read while the store is busy.
        """
        message = parse_client_message(raw)
        if message is None:
            logger.warning(f"Invalid message format on {connection.connection_id}")
            await connection.send_json(create_error_message("Invalid message format"))
            return None

        if not message.has_credentials():
            logger.error("Missing sessionToken or username.")
            await connection.send_json(create_error_message("Missing sessionToken or username"))
            return None

        self.validator.schedule(connection, message.username, message.session_token)

        action = message.action_type()
        if action is None:
            logger.warning(f"Unknown action received: {message.action}")
            await connection.send_json(create_error_message("Unknown action"))
            return None

        task = asyncio.create_task(self.dispatcher.dispatch(connection, action, message))
        self._handler_tasks.add(task)
        task.add_done_callback(self._handler_tasks.discard)
        return task

    def get_connection_stats(self) -> Dict[str, Any]:
        """Get WebSocket connection statistics"""
        return {
            "total_connections": self.connection_manager.get_connection_count(),
            "bound_users": self.connection_manager.get_bound_user_count(),
            "handlers_in_flight": len(self._handler_tasks)
        }

    async def cleanup(self):
        """Let in-flight handlers finish, then close every connection"""
        if self._handler_tasks:
            await asyncio.gather(*self._handler_tasks, return_exceptions=True)

        for connection in list(self.connection_manager.active_connections.values()):
            self.validator.cancel(connection)

        await self.connection_manager.cleanup()
        logger.info("WebSocketManager cleaned up")
