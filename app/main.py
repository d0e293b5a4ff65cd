"""
app/main.py

Purpose: Application entry point

- Builds the FastAPI app around one Settings instance
- Loads logging and exception handlers
- Registers API routes (accounts, admin)
- No business logic should be written here
- Manages application lifecycle (startup/shutdown)
"""

from contextlib import asynccontextmanager
from typing import Optional
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import admin, users
from app.core.config import Settings, load_settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.db.indexes import create_indexes
from app.db.mongo import (
    check_database_health,
    close_mongo_connection,
    connect_to_mongo,
    get_users_collection,
)

logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    settings: Settings = app.state.settings
    logger.info("Starting accounts service...")

    try:
        validate_settings(settings)
        logger.info("Configuration validated")

        await connect_to_mongo(settings)
        await create_indexes(get_users_collection())

        if not await check_database_health():
            logger.warning("Database health check failed during startup")

        logger.info(f"Accounts service started (environment={settings.ENVIRONMENT})")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield  # Application runs here

    logger.info("Shutting down accounts service...")
    try:
        await close_mongo_connection()
    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}", exc_info=True)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Creates the application.

    Args:
        settings: Configuration to inject; read from the environment when omitted
    """
    settings = settings or load_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Shop Accounts API",
        description="User accounts for the e-commerce backend",
        version=VERSION,
        lifespan=lifespan,
        debug=settings.DEBUG,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add processing time header to all responses."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)

        # Image host and SMTP calls can be slow
        if process_time > 5.0:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path}",
                extra={"process_time": process_time}
            )

        return response

    add_exception_handlers(app)

    app.include_router(users.router, prefix=settings.API_PREFIX, tags=["Accounts"])
    app.include_router(admin.router, prefix=settings.API_PREFIX, tags=["Admin"])

    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint - basic info."""
        return {
            "name": "Shop Accounts API",
            "version": VERSION,
            "status": "running",
            "environment": settings.ENVIRONMENT
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check endpoint. Checks database connectivity.
        """
        db_healthy = await check_database_health()
        health_status = {
            "status": "healthy" if db_healthy else "degraded",
            "timestamp": time.time(),
            "environment": settings.ENVIRONMENT,
            "version": VERSION,
            "checks": {"database": "healthy" if db_healthy else "unhealthy"}
        }
        status_code = 200 if db_healthy else 503
        return JSONResponse(content=health_status, status_code=status_code)

    @app.get("/ready", tags=["Health"])
    async def readiness_check():
        """
        Readiness probe - indicates if app is ready to receive traffic.
        """
        if await check_database_health():
            return {"status": "ready"}
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "reason": "database_unavailable"}
        )

    @app.get("/live", tags=["Health"])
    async def liveness_check():
        """
        Liveness probe - indicates if app is alive.
        """
        return {"status": "alive"}

    return app


if __name__ == "__main__":
    import uvicorn

    env_settings = load_settings()
    uvicorn.run(
        "app.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=env_settings.is_development,
        log_level=env_settings.LOG_LEVEL.lower()
    )
