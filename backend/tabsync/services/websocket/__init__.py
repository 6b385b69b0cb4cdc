from .websocket_manager import WebSocketManager
from .connection_manager import Connection, ConnectionManager
from .session_validator import SessionValidator
from .action_dispatcher import ActionDispatcher
from .message_protocol import (
    ActionType,
    ActionResult,
    ClientMessage,
    ControlStatus,
    create_control_message,
    create_data_message,
    create_error_message,
    parse_client_message
)

__all__ = [
    "WebSocketManager",
    "Connection",
    "ConnectionManager",
    "SessionValidator",
    "ActionDispatcher",
    "ActionType",
    "ActionResult",
    "ClientMessage",
    "ControlStatus",
    "create_control_message",
    "create_data_message",
    "create_error_message",
    "parse_client_message"
]
