"""
WebSocket message protocol for the sync channel

Inbound frames are JSON objects ``{action, sessionToken, username, data}``.
Outbound frames are either control messages ``{status, message}`` or data
messages ``{action, ...payload}``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
import json
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ActionType(str, Enum):
    """Actions a client may request"""
    # Tabs
    CREATE_TAB = "createTab"
    CLOSE_TAB = "closeTab"
    GROUP_TAB = "groupTab"
    GET_TABS = "getTabs"

    # Shortcuts
    ADD_SHORTCUT = "addShortcut"
    GET_SHORTCUTS = "getShortcuts"
    DELETE_SHORTCUT = "deleteShortcut"

    # History
    ADD_HISTORY = "addHistory"
    GET_HISTORY = "getHistory"
    DELETE_HISTORY = "deleteHistory"

    # Bookmarks
    ADD_BOOKMARK = "addBookmark"
    UPDATE_BOOKMARK = "updateBookmark"
    DELETE_BOOKMARK = "deleteBookmark"
    GET_BOOKMARKS = "getBookmarks"

    # Notes
    ADD_NOTE = "addNote"
    UPDATE_NOTE = "updateNote"
    DELETE_NOTE = "deleteNote"
    GET_NOTES = "getNotes"


class ControlStatus(str, Enum):
    """Control-plane statuses"""
    VALID = "valid"
    LOGOUT = "logout"
    ERROR = "error"


class ClientMessage(BaseModel):
    """Inbound sync message"""
    model_config = ConfigDict(populate_by_name=True)

    action: Optional[str] = None
    session_token: Optional[str] = Field(None, alias="sessionToken")
    username: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def default_data(cls, v):
        return {} if v is None else v

    def has_credentials(self) -> bool:
        return bool(self.session_token) and bool(self.username)

    def action_type(self) -> Optional[ActionType]:
        """Resolve the action name, None when it is not a known action"""
        try:
            return ActionType(self.action)
        except ValueError:
            return None


@dataclass
class ActionResult:
    """
    Outcome of one handler.

    ``reply`` goes to the requesting connection only. ``broadcast`` goes to
    every open connection bound to ``username``.
    """
    reply: Optional[Dict[str, Any]] = None
    broadcast: Optional[Dict[str, Any]] = None
    username: Optional[str] = None


def create_control_message(status: ControlStatus, message: str) -> Dict[str, Any]:
    """Create a control-plane message"""
    return {"status": status.value, "message": message}


def create_error_message(message: str) -> Dict[str, Any]:
    return create_control_message(ControlStatus.ERROR, message)


def create_logout_message(message: str) -> Dict[str, Any]:
    return create_control_message(ControlStatus.LOGOUT, message)


def create_valid_message(message: str = "Session verified") -> Dict[str, Any]:
    return create_control_message(ControlStatus.VALID, message)


def create_data_message(action: str, **payload: Any) -> Dict[str, Any]:
    """Create a data-plane message tagged with the resulting action name"""
    return {"action": action, **payload}


def parse_client_message(message: str) -> Optional[ClientMessage]:
    """Parse incoming client message, None when the frame is malformed"""
    try:
        data = json.loads(message)
    except (json.JSONDecodeError, TypeError):
        return None

    if not isinstance(data, dict):
        return None

    try:
        return ClientMessage.model_validate(data)
    except ValidationError:
        return None
