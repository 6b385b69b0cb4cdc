import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from tabsync.core.config import settings
from tabsync.api.api import api_router
from tabsync.api.errors import register_exception_handlers
from tabsync.db.database import get_db, init_db
from tabsync.middleware import SecurityHeadersMiddleware
from tabsync.services.background_tasks import BackgroundTaskManager
from tabsync.services.search import get_search_service
from tabsync.services.websocket import WebSocketManager

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    try:
        await init_db()
    except Exception as e:
        logger.critical(f"Could not open the store: {e}")
        raise

    # One registry per process, shared by every socket
    app.state.websocket_manager = WebSocketManager()

    background_manager = BackgroundTaskManager()
    await background_manager.start()
    app.state.background_manager = background_manager

    yield

    # Shutdown
    await app.state.websocket_manager.cleanup()
    await background_manager.stop()
    await get_search_service().close()
    await get_db().disconnect()


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Real-time tab, bookmark and note sync for browser clients",
    version=settings.VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.add_middleware(SecurityHeadersMiddleware)

# Add exception handlers
register_exception_handlers(app)

# Include API routes
app.include_router(api_router)


@app.get("/")
async def root():
    return {
        "message": "Tabsync API",
        "version": settings.VERSION,
        "status": "operational",
        "docs_url": "/docs"
    }
