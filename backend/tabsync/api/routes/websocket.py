"""
WebSocket endpoint for real-time session sync
"""

from fastapi import APIRouter, Request, WebSocket, Query
from typing import Optional
import logging

from tabsync.api.schemas import ConnectionStats, WebSocketStatusResponse
from tabsync.services.websocket import WebSocketManager

router = APIRouter(tags=["websocket"])
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def websocket_sync_endpoint(
    websocket: WebSocket,
    client_id: Optional[str] = Query(None, description="Optional client identifier")
):
    """
    WebSocket endpoint for tab, shortcut, history, bookmark and note sync

    Message Protocol:
    - Incoming: {"action", "sessionToken", "username", "data"}
    - Outgoing: {"status", "message"} control messages and
      {"action", ...} data messages
    """
    websocket_manager: WebSocketManager = websocket.app.state.websocket_manager

    client_info = {
        "client_id": client_id,
        "client_host": websocket.client.host if websocket.client else None
    }

    logger.info(f"WebSocket connection request from {client_info.get('client_host')} (ID: {client_id})")
    await websocket_manager.handle_connection(websocket, client_info)


@router.get("/ws/status", response_model=WebSocketStatusResponse)
async def get_websocket_status(request: Request):
    """Get WebSocket service status and statistics"""
    websocket_manager: WebSocketManager = request.app.state.websocket_manager
    return WebSocketStatusResponse(
        statistics=ConnectionStats(**websocket_manager.get_connection_stats())
    )
