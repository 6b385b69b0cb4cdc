from .health import router as health_router
from .auth import router as auth_router
from .session import router as session_router
from .search import router as search_router
from .websocket import router as websocket_router

__all__ = [
    "health_router",
    "auth_router",
    "session_router",
    "search_router",
    "websocket_router"
]
