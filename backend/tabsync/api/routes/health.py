from fastapi import APIRouter, Request
from datetime import datetime

from tabsync.api.schemas import HealthResponse
from tabsync.db.database import get_db
from tabsync.core.config import settings

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/", response_model=HealthResponse)
async def health_check(request: Request):
    """Store reachability plus live-sync and sweep state"""
    try:
        await get_db().fetch_one("SELECT 1")
        database_status = "connected"
    except Exception:
        database_status = "disconnected"

    websocket_manager = getattr(request.app.state, "websocket_manager", None)
    background_manager = getattr(request.app.state, "background_manager", None)

    return HealthResponse(
        status="healthy" if database_status == "connected" else "unhealthy",
        version=settings.VERSION,
        timestamp=datetime.now().isoformat(),
        database=database_status,
        live_connections=websocket_manager.connection_manager.get_connection_count() if websocket_manager else 0,
        sweep_running=background_manager.is_running if background_manager else False
    )
