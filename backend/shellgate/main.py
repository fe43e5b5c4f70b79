"""
Shellgate - Main Application

FastAPI application with:
- Browser terminal WebSocket bridged to SSH
- Encrypted connection profiles (SQLAlchemy)
- Password and multi-key authentication with fallback
"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
import sys

from shellgate.core.config import Settings, settings as default_settings
from shellgate.core.crypto import SecretCipher
from shellgate.core.database import Database, build_database
from shellgate.api.v1.router import api_router
from shellgate.api.v1.endpoints.terminal import terminal_websocket
from shellgate.services.credential_store import CredentialStore
from shellgate.terminal.registry import SessionRegistry
from shellgate.terminal.ssh_client import SSHConnector


def configure_logging(settings: Settings):
    logger.remove()
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=settings.LOG_LEVEL,
    )

    if not settings.DEBUG:
        logger.add(
            settings.LOG_FILE,
            rotation="500 MB",
            retention="10 days",
            compression="zip",
            level=settings.LOG_LEVEL,
        )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    ssh_connector=None,
) -> FastAPI:
    """
    Build the application.

    Services are constructed once in the lifespan and shared through
    ``app.state``; callers may inject their own database or SSH connector.
    """
    settings = settings or default_settings
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        logger.info(f"Starting {settings.APP_NAME} {settings.APP_VERSION} ({settings.ENVIRONMENT})")

        db = database or build_database(settings.DATABASE_URL, echo=settings.DEBUG)
        try:
            await db.init()
        except Exception as e:
            logger.error(f"Startup failed: {e}")
            raise

        app.state.settings = settings
        app.state.database = db
        app.state.credential_store = CredentialStore(db.session_factory, SecretCipher(settings.ENCRYPTION_KEY))
        app.state.ssh_connector = ssh_connector or SSHConnector(known_hosts=settings.SSH_KNOWN_HOSTS)
        app.state.session_registry = SessionRegistry(settings.MAX_SESSIONS_PER_USER)
        logger.info("Application started")

        yield

        logger.info(f"Shutting down {settings.APP_NAME}...")
        try:
            await db.close()
        except Exception as e:
            logger.error(f"Shutdown error: {e}")
        logger.info("Application stopped")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Browser terminal gateway to SSH hosts",
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
        openapi_url="/api/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "error": str(exc) if settings.DEBUG else "An error occurred",
            },
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "active_sessions": app.state.session_registry.get_active_count(),
        }

    # Browser terminal connects to /ws directly
    app.add_api_websocket_route("/ws", terminal_websocket)
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return app


def run():
    """Console entry point"""
    import uvicorn

    uvicorn.run(
        "shellgate.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=default_settings.DEBUG,
        log_level=default_settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
