# access_server/main.py
"""
WireGuard Access Server - Main Application
FastAPI application entry point
"""

import asyncio
import uvicorn
import logging
from datetime import datetime
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.middleware.sessions import SessionMiddleware

from access_server.api.v1 import devices, session
from access_server.config import settings
from access_server.core.device_manager import DeviceManager
from access_server.core.device_registry import DeviceRegistry
from access_server.core.errors import (
    ActivationFailure,
    DeviceAlreadyExists,
    DeviceError,
    InvalidInput,
    NotFound,
    PersistenceFailure,
    PoolExhausted,
    PublicKeyInUse,
)
from access_server.core.ipam import IPAMService
from access_server.core.wireguard_service import WireGuardService
from access_server.database.session import init_db, db_manager, SessionLocal
from access_server.schemas.base import HealthResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Most specific class first
ERROR_STATUS = [
    (DeviceAlreadyExists, status.HTTP_409_CONFLICT),
    (PublicKeyInUse, status.HTTP_409_CONFLICT),
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (PoolExhausted, status.HTTP_503_SERVICE_UNAVAILABLE),
    (PersistenceFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ActivationFailure, status.HTTP_502_BAD_GATEWAY),
]


def error_status(exc: DeviceError) -> int:
    for error_class, status_code in ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def build_device_manager() -> DeviceManager:
    """Wire the production collaborators together"""
    return DeviceManager(
        registry=DeviceRegistry(SessionLocal),
        gateway=WireGuardService(),
        ipam=IPAMService(),
        prune_orphans=settings.SYNC_PRUNE_ORPHANS,
        static_peers=settings.WG_STATIC_PEERS,
    )


def run_sync(manager: DeviceManager) -> None:
    """One reconciliation pass; failures are logged, never raised"""
    try:
        report = manager.sync()
    except DeviceError as e:
        logger.error(f"Sync failed: {e}")
        return
    if not report.ok:
        logger.warning(f"Sync finished with {len(report.failed)} failures")


async def sync_periodically(manager: DeviceManager, interval: int) -> None:
    """Run sync every `interval` seconds until cancelled"""
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(run_sync, manager)
        except Exception as e:
            logger.exception(f"Periodic sync crashed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan events
    - Startup: Initialize database, reconcile peers, start the sync loop
    - Shutdown: Stop the sync loop
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENV}")

    if app.state.device_manager is None:
        init_db()
        app.state.device_manager = build_device_manager()
    manager = app.state.device_manager

    if settings.SYNC_ON_STARTUP:
        await asyncio.to_thread(run_sync, manager)

    sync_task = None
    if settings.SYNC_INTERVAL > 0:
        sync_task = asyncio.create_task(sync_periodically(manager, settings.SYNC_INTERVAL))

    app.state.startup_time = datetime.utcnow()
    logger.info("Application started successfully")

    yield

    logger.info("Shutting down application")
    if sync_task is not None:
        sync_task.cancel()
        try:
            await sync_task
        except asyncio.CancelledError:
            pass


def create_app(device_manager: Optional[DeviceManager] = None) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        device_manager: Pre-built manager; when omitted the lifespan wires
            the SQL registry and the WireGuard interface from settings
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description="""
        WireGuard Access Server API

        Provisions and revokes VPN client devices:
        - Address allocation from the VPN subnet
        - Device registry persistence
        - WireGuard peer management and reconciliation

        ## Authentication

        Sign in with `POST /api/v1/session` and the X-Admin-Token header;
        the session cookie authenticates every device endpoint.
        """,
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )
    app.state.device_manager = device_manager
    app.state.startup_time = None

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Signed cookie sessions
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=settings.is_production,
    )

    # === Exception Handlers ===

    @app.exception_handler(DeviceError)
    async def device_exception_handler(request: Request, exc: DeviceError):
        """Map lifecycle failures to HTTP responses naming the failed subsystem"""
        return JSONResponse(
            status_code=error_status(exc),
            content={
                "success": False,
                "error": exc.message,
                "error_code": exc.error_code,
                "details": exc.details,
                "timestamp": datetime.utcnow().isoformat()
            }
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors"""
        errors = []
        for error in exc.errors():
            errors.append({
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"]
            })

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "success": False,
                "error": "Validation error",
                "error_code": "VALIDATION_ERROR",
                "details": {"errors": errors},
                "timestamp": datetime.utcnow().isoformat()
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.exception(f"Unexpected error: {exc}")

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Internal server error",
                "error_code": "INTERNAL_ERROR",
                "details": {"message": str(exc)} if settings.DEBUG else None,
                "timestamp": datetime.utcnow().isoformat()
            }
        )

    # === Include Routers ===

    app.include_router(
        session.router,
        prefix="/api/v1/session",
        tags=["Session"]
    )

    app.include_router(
        devices.router,
        prefix="/api/v1/devices",
        tags=["Devices"]
    )

    # === Root Endpoints ===

    @app.get(
        "/",
        summary="Root endpoint",
        description="Welcome message and API info"
    )
    async def read_root():
        """Root endpoint with API information"""
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "health": "/health"
        }

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health check",
        description="Check database and WireGuard interface health"
    )
    def health_check(request: Request):
        """Health check endpoint for monitoring"""
        db_status = "connected" if db_manager.check_connection() else "disconnected"

        manager = request.app.state.device_manager
        wg_status = "up" if manager is not None and manager.gateway.is_interface_up() else "down"

        uptime = None
        if request.app.state.startup_time:
            uptime = (datetime.utcnow() - request.app.state.startup_time).total_seconds()

        return HealthResponse(
            status="healthy" if db_status == "connected" and wg_status == "up" else "unhealthy",
            version=settings.APP_VERSION,
            uptime_seconds=uptime,
            database=db_status,
            wireguard=wg_status
        )

    return app


app = create_app()


# === Run Application ===

if __name__ == "__main__":
    uvicorn.run(
        "access_server.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
