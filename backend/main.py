from fastapi import FastAPI, WebSocket, Query, Depends
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from sqlalchemy.orm import Session
from database import SessionLocal, get_db
from init_db import init_database
from api import videos, users, tasks
from config import settings
from constants import ServerConfig, organization_channel
from dependencies import get_credential_verifier, resolve_user
from exceptions import ApplicationError, ConfigurationError
from schemas import HealthResponse
from services.interfaces import ICredentialVerifier
from services.job_integrity_service import job_integrity_service
from services.task_registry import task_registry
from services.websocket import manager, websocket_session
import asyncio
import logging
from logging.handlers import RotatingFileHandler
import sys

# Configure logging with rotating file handler
settings.LOG_DIR.mkdir(parents=True, exist_ok=True)
LOG_FILE = settings.LOG_DIR / "backend.log"

log_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

# File handler with rotation (10MB per file, keep 5 backups)
file_handler = RotatingFileHandler(
    LOG_FILE,
    maxBytes=10 * 1024 * 1024,
    backupCount=5,
    encoding='utf-8'
)
file_handler.setFormatter(log_formatter)

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(log_formatter)

root_logger = logging.getLogger()
root_logger.setLevel(settings.LOG_LEVEL)
root_logger.addHandler(file_handler)
root_logger.addHandler(console_handler)

logger = logging.getLogger(__name__)
logger.info(f"Logging initialized: {LOG_FILE}")

# Initialize database on startup
init_database()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown"""
    try:
        settings.validate_settings()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e.message}")
        raise

    if settings.RECOVER_STALE_JOBS_ON_STARTUP:
        db = SessionLocal()
        try:
            recovered = job_integrity_service.startup_recovery(db, settings.STALE_JOB_THRESHOLD_MINUTES)
            if recovered:
                logger.warning(f"Marked {recovered} abandoned jobs as failed")
        except ApplicationError as e:
            logger.error(f"Startup recovery failed: {e.message}")
        finally:
            db.close()

    sweep_task = None
    if settings.STALE_SWEEP_INTERVAL_SECONDS > 0:
        sweep_task = asyncio.create_task(job_integrity_service.sweep_loop(
            SessionLocal,
            settings.STALE_JOB_THRESHOLD_MINUTES,
            settings.STALE_SWEEP_INTERVAL_SECONDS,
        ))

    logger.info(f"{ServerConfig.SERVICE_NAME} started (storage: {settings.STORAGE_BACKEND})")

    yield

    # Shutdown
    if sweep_task and not sweep_task.done():
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            logger.info("Stale job sweep cancelled")

    cancelled = await task_registry.shutdown()
    if cancelled:
        logger.warning(f"Cancelled {cancelled} running pipeline tasks; they will be recovered by the stale job sweep")
    logger.info("Application shutdown complete")


app = FastAPI(
    title=ServerConfig.SERVICE_NAME,
    description="Multi-tenant video upload, processing and moderation pipeline",
    version=ServerConfig.VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(videos.router, prefix=ServerConfig.API_PREFIX, tags=["videos"])
app.include_router(users.router, prefix=ServerConfig.API_PREFIX, tags=["users"])
app.include_router(tasks.router, prefix=ServerConfig.API_PREFIX, tags=["tasks"])


@app.websocket("/api/ws")
async def websocket_route(
    websocket: WebSocket,
    token: str = Query(""),
    db: Session = Depends(get_db),
    verifier: ICredentialVerifier = Depends(get_credential_verifier),
):
    """WebSocket endpoint for real-time job updates of the caller's organization"""
    try:
        user = resolve_user(db, verifier, token)
    except ApplicationError as e:
        logger.warning(f"Rejected WebSocket connection: {e.message}")
        await websocket.close(code=1008)
        return

    channel = organization_channel(user.organization)
    client_id = user.id
    # The session is not needed while the socket stays open
    db.close()
    await websocket_session(websocket, channel, client_id)


@app.get("/api/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "service": ServerConfig.SERVICE_NAME,
        "version": ServerConfig.VERSION,
        "active_tasks": len(task_registry.snapshot()),
        "websocket_connections": manager.connection_count,
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting {ServerConfig.SERVICE_NAME} on http://{settings.HOST}:{settings.PORT}...")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
