from .common import (
    ErrorResponse,
    HealthResponse,
    ConnectionStats,
    WebSocketStatusResponse
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "ConnectionStats",
    "WebSocketStatusResponse"
]
