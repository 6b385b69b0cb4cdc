from fastapi import APIRouter, Depends

from tabsync.api.routes import (
    health_router,
    auth_router,
    session_router,
    search_router,
    websocket_router
)
from tabsync.api.schemas import ErrorResponse
from tabsync.core.config import settings
from tabsync.services.rate_limiter import global_limiter

# Create main API router; every error body follows ErrorResponse
api_router = APIRouter(
    prefix=settings.API_V1_STR,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        429: {"model": ErrorResponse}
    }
)

# Include all route modules; every HTTP route shares the global per-IP limit
rate_limited = [Depends(global_limiter)]
api_router.include_router(health_router, dependencies=rate_limited)
api_router.include_router(auth_router, dependencies=rate_limited)
api_router.include_router(session_router, dependencies=rate_limited)
api_router.include_router(search_router, dependencies=rate_limited)
api_router.include_router(websocket_router)
