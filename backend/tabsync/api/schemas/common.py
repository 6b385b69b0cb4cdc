from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ErrorResponse(BaseModel):
    """Body of every HTTP error produced by the exception handlers"""
    success: bool = False
    message: Any
    status_code: int
    path: Optional[str] = None
    errors: Optional[List[Dict[str, Any]]] = Field(None, description="Present on validation errors only")


class HealthResponse(BaseModel):
    """Health check response"""
    status: str = "healthy"
    service: str = "tabsync-api"
    version: str
    timestamp: str
    database: str = "connected"
    live_connections: int = 0
    sweep_running: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "service": "tabsync-api",
                "version": "0.1.0",
                "timestamp": "2024-01-01T12:00:00",
                "database": "connected",
                "live_connections": 3,
                "sweep_running": True
            }
        }


class ConnectionStats(BaseModel):
    total_connections: int
    bound_users: int
    handlers_in_flight: int


class WebSocketStatusResponse(BaseModel):
    success: bool = True
    service: str = "websocket"
    status: str = "operational"
    statistics: ConnectionStats
